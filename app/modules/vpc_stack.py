from aws_cdk import (
    aws_ec2 as ec2,
    Stack
)
from constructs import Construct

class VpcStack(Stack):
    def __init__(self, scope: Construct, id: str, config, **kwargs):
        super().__init__(scope, id, **kwargs)

        # Public subnets only, no NAT: the appliance is the only workload
        self.vpc = ec2.Vpc(
            self, "ClientVpnVpc",
            ip_addresses=ec2.IpAddresses.cidr(config.vpc_cidr),
            max_azs=2,
            nat_gateways=0,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="ingress",
                    subnet_type=ec2.SubnetType.PUBLIC,
                    cidr_mask=24
                )
            ]
        )
