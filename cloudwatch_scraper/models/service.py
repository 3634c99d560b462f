# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Supported AWS service definitions.

Each service declares the Resource Groups Tagging API resource type filters
used to discover its resources, and the ARN regular expressions that extract
the CloudWatch dimension values identifying a resource. Services without
resource filters rely on an extension hook (see clients/extensions.py), or on
nothing at all for account-level namespaces such as AWS/Usage.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ServiceConfig(BaseModel):
    """Discovery definition for one CloudWatch namespace."""

    model_config = ConfigDict(frozen=True)

    namespace: str = Field(..., description="CloudWatch namespace (e.g. AWS/EC2)")
    alias: str = Field(..., description="Short name accepted in job configuration")
    resource_filters: list[str] = Field(
        default_factory=list,
        description="Resource type filters for the tagging API (e.g. ec2:instance)",
    )
    dimension_regexps: list[str] = Field(
        default_factory=list,
        description="ARN patterns whose named groups are CloudWatch dimension names",
    )

    def compiled_dimension_regexps(self) -> list[re.Pattern]:
        return [re.compile(pattern) for pattern in self.dimension_regexps]


SUPPORTED_SERVICES: tuple[ServiceConfig, ...] = (
    ServiceConfig(
        namespace="AWS/ApiGateway",
        alias="apigateway",
        resource_filters=["apigateway"],
        dimension_regexps=[
            r"/apis/(?P<ApiId>[^/]+)$",
            r"restapis/(?P<ApiName>[^/]+)$",
        ],
    ),
    ServiceConfig(
        namespace="AWS/ApplicationELB",
        alias="alb",
        resource_filters=["elasticloadbalancing:loadbalancer/app", "elasticloadbalancing:targetgroup"],
        dimension_regexps=[
            r":(?P<TargetGroup>targetgroup/.+)",
            r":loadbalancer/(?P<LoadBalancer>.+)$",
        ],
    ),
    ServiceConfig(
        namespace="AWS/AutoScaling",
        alias="asg",
        dimension_regexps=[r"autoScalingGroupName/(?P<AutoScalingGroupName>[^/]+)"],
    ),
    ServiceConfig(
        namespace="AWS/DDoSProtection",
        alias="shield",
        dimension_regexps=[r"(?P<ResourceArn>.+)"],
    ),
    ServiceConfig(
        namespace="AWS/DMS",
        alias="dms",
        resource_filters=["dms"],
        dimension_regexps=[
            r"rep:[^/]+/(?P<ReplicationInstanceIdentifier>[^/]+)",
            r"task:(?P<ReplicationTaskIdentifier>[^/]+)/(?P<ReplicationInstanceIdentifier>[^/]+)",
        ],
    ),
    ServiceConfig(
        namespace="AWS/DynamoDB",
        alias="dynamodb",
        resource_filters=["dynamodb:table"],
        dimension_regexps=[r":table/(?P<TableName>[^/]+)"],
    ),
    ServiceConfig(
        namespace="AWS/EBS",
        alias="ebs",
        resource_filters=["ec2:volume"],
        dimension_regexps=[r"volume/(?P<VolumeId>[^/]+)"],
    ),
    ServiceConfig(
        namespace="AWS/EC2",
        alias="ec2",
        resource_filters=["ec2:instance"],
        dimension_regexps=[r"instance/(?P<InstanceId>[^/]+)"],
    ),
    ServiceConfig(
        namespace="AWS/EC2Spot",
        alias="ec2Spot",
        dimension_regexps=[r"(?P<FleetRequestId>.*)"],
    ),
    ServiceConfig(
        namespace="AWS/ECS",
        alias="ecs-svc",
        resource_filters=["ecs:cluster", "ecs:service"],
        dimension_regexps=[
            r":cluster/(?P<ClusterName>[^/]+)$",
            r":service/(?P<ClusterName>[^/]+)/(?P<ServiceName>[^/]+)$",
        ],
    ),
    ServiceConfig(
        namespace="AWS/ElastiCache",
        alias="ec",
        resource_filters=["elasticache:cluster"],
        dimension_regexps=[r"cluster:(?P<CacheClusterId>[^/]+)"],
    ),
    ServiceConfig(
        namespace="AWS/ELB",
        alias="elb",
        resource_filters=["elasticloadbalancing:loadbalancer"],
        dimension_regexps=[r":loadbalancer/(?P<LoadBalancerName>.+)$"],
    ),
    ServiceConfig(
        namespace="AWS/ES",
        alias="es",
        resource_filters=["es:domain"],
        dimension_regexps=[r":domain/(?P<DomainName>[^/]+)"],
    ),
    ServiceConfig(
        namespace="AWS/Firehose",
        alias="firehose",
        resource_filters=["firehose"],
        dimension_regexps=[r":deliverystream/(?P<DeliveryStreamName>[^/]+)"],
    ),
    ServiceConfig(
        namespace="AWS/Kinesis",
        alias="kinesis",
        resource_filters=["kinesis:stream"],
        dimension_regexps=[r":stream/(?P<StreamName>[^/]+)"],
    ),
    ServiceConfig(
        namespace="AWS/Lambda",
        alias="lambda",
        resource_filters=["lambda:function"],
        dimension_regexps=[r":function:(?P<FunctionName>[^/]+)"],
    ),
    ServiceConfig(
        namespace="AWS/NATGateway",
        alias="ngw",
        resource_filters=["ec2:natgateway"],
        dimension_regexps=[r"natgateway/(?P<NatGatewayId>[^/]+)"],
    ),
    ServiceConfig(
        namespace="AWS/NetworkELB",
        alias="nlb",
        resource_filters=["elasticloadbalancing:loadbalancer/net", "elasticloadbalancing:targetgroup"],
        dimension_regexps=[
            r":(?P<TargetGroup>targetgroup/.+)",
            r":loadbalancer/(?P<LoadBalancer>.+)$",
        ],
    ),
    ServiceConfig(
        namespace="AWS/Prometheus",
        alias="amp",
        dimension_regexps=[r":workspace/(?P<Workspace>[^/]+)"],
    ),
    ServiceConfig(
        namespace="AWS/RDS",
        alias="rds",
        resource_filters=["rds:db", "rds:cluster"],
        dimension_regexps=[
            r":cluster:(?P<DBClusterIdentifier>[^/]+)",
            r":db:(?P<DBInstanceIdentifier>[^/]+)",
        ],
    ),
    ServiceConfig(
        namespace="AWS/S3",
        alias="s3",
        resource_filters=["s3"],
        dimension_regexps=[r"(?P<BucketName>[^:]+)$"],
    ),
    ServiceConfig(
        namespace="AWS/SNS",
        alias="sns",
        resource_filters=["sns"],
        dimension_regexps=[r"(?P<TopicName>[^:]+)$"],
    ),
    ServiceConfig(
        namespace="AWS/SQS",
        alias="sqs",
        resource_filters=["sqs"],
        dimension_regexps=[r"(?P<QueueName>[^:]+)$"],
    ),
    ServiceConfig(
        namespace="AWS/StorageGateway",
        alias="sgw",
        dimension_regexps=[
            r":gateway/(?P<GatewayId>[^:]+)$",
            r":share/(?P<ShareId>[^:]+)$",
            r"^(?P<GatewayId>[^:/]+)/(?P<GatewayName>[^:]+)$",
        ],
    ),
    ServiceConfig(
        namespace="AWS/Usage",
        alias="usage",
    ),
)

_SERVICES_BY_NAME: dict[str, ServiceConfig] = {}
for _service in SUPPORTED_SERVICES:
    _SERVICES_BY_NAME[_service.namespace] = _service
    _SERVICES_BY_NAME[_service.alias] = _service


def get_service(name: str) -> Optional[ServiceConfig]:
    """
    Look up a supported service by namespace or alias.

    Args:
        name: CloudWatch namespace (AWS/EC2) or alias (ec2)

    Returns:
        The ServiceConfig, or None if the service is not supported
    """
    return _SERVICES_BY_NAME.get(name)
