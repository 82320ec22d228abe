"""
Built-in AWS resource types.

Covers the network, compute, database, load-balancing, autoscaling, IAM, DNS
and alarm resources of a typical web application stack. Immutable properties
follow the EC2/RDS/ELB APIs: changing them forces a new resource.
"""

from __future__ import annotations

from groundwork.catalog.types import ResourceTypeSpec, TypeRegistry


def _spec(
    name: str,
    description: str,
    immutable: tuple[str, ...] = (),
    create_before_destroy: bool = False,
) -> ResourceTypeSpec:
    return ResourceTypeSpec(
        name=name,
        description=description,
        immutable=frozenset(immutable),
        create_before_destroy=create_before_destroy,
    )


AWS_RESOURCE_TYPES: tuple[ResourceTypeSpec, ...] = (
    # Network
    _spec("aws:ec2/vpc", "Virtual private cloud", ("cidr_block", "instance_tenancy")),
    _spec(
        "aws:ec2/subnet",
        "Subnet in one availability zone",
        ("vpc_id", "cidr_block", "availability_zone"),
    ),
    _spec("aws:ec2/internet_gateway", "Internet gateway"),
    _spec(
        "aws:ec2/internet_gateway_attachment",
        "Gateway to VPC attachment",
        ("internet_gateway_id", "vpc_id"),
    ),
    _spec("aws:ec2/route_table", "Route table", ("vpc_id",)),
    _spec(
        "aws:ec2/route",
        "Route in a route table",
        ("route_table_id", "destination_cidr_block"),
    ),
    _spec(
        "aws:ec2/route_table_association",
        "Subnet to route table association",
        ("subnet_id",),
    ),
    _spec("aws:ec2/security_group", "Security group", ("vpc_id", "name", "description")),
    _spec(
        "aws:ec2/security_group_rule",
        "Standalone security group rule",
        (
            "security_group_id",
            "type",
            "protocol",
            "from_port",
            "to_port",
            "cidr_blocks",
            "source_security_group_id",
        ),
    ),
    # Compute
    _spec("aws:ec2/key_pair", "SSH key pair", ("key_name", "public_key")),
    _spec(
        "aws:ec2/instance",
        "Standalone EC2 instance",
        ("ami", "subnet_id", "key_name", "availability_zone", "associate_public_ip_address"),
    ),
    _spec(
        "aws:ec2/launch_template",
        "Launch template for autoscaling",
        ("name",),
        create_before_destroy=True,
    ),
    # Database
    _spec("aws:rds/parameter_group", "RDS parameter group", ("name", "family", "description")),
    _spec("aws:rds/subnet_group", "RDS subnet group", ("name",)),
    _spec(
        "aws:rds/instance",
        "RDS database instance",
        ("engine", "identifier", "db_name", "username", "storage_encrypted", "availability_zone"),
    ),
    # IAM
    _spec("aws:iam/role", "IAM role", ("name",)),
    _spec("aws:iam/policy", "IAM managed policy", ("name",)),
    _spec("aws:iam/role_policy_attachment", "Role to policy attachment", ("role", "policy_arn")),
    _spec("aws:iam/instance_profile", "EC2 instance profile", ("name",)),
    # Load balancing
    _spec(
        "aws:lb/load_balancer",
        "Application load balancer",
        ("name", "internal", "load_balancer_type"),
        create_before_destroy=True,
    ),
    _spec(
        "aws:lb/target_group",
        "Load balancer target group",
        ("name", "port", "protocol", "vpc_id", "target_type"),
        create_before_destroy=True,
    ),
    _spec("aws:lb/listener", "Load balancer listener", ("load_balancer_arn",)),
    # Autoscaling
    _spec(
        "aws:autoscaling/group",
        "Autoscaling group",
        ("name",),
        create_before_destroy=True,
    ),
    _spec("aws:autoscaling/policy", "Scaling policy", ("name", "autoscaling_group_name")),
    # Monitoring, messaging and DNS
    _spec("aws:cloudwatch/metric_alarm", "CloudWatch metric alarm", ("name",)),
    _spec("aws:sns/topic", "SNS topic", ("name", "fifo_topic")),
    _spec("aws:route53/record", "Route53 DNS record", ("zone_id", "name", "type")),
)


def aws_type_registry() -> TypeRegistry:
    """A registry pre-loaded with the built-in AWS types."""
    return TypeRegistry(list(AWS_RESOURCE_TYPES))
