# Autoscaling Group Stack module
import logging

from aws_cdk import (
    aws_autoscaling as autoscaling,
    aws_ec2 as ec2,
    Stack
)
from constructs import Construct

from app.openvpn import bootstrap_commands, resolve_image

logger = logging.getLogger("openvpn_app.asg")

class AsgStack(Stack):
    def __init__(self, scope: Construct, id: str, vpc, openvpn_sg, topic, config, **kwargs):
        super().__init__(scope, id, **kwargs)

        # Fails before any resource is defined if the region has no image
        ami_id = resolve_image(self.region)
        machine_image = ec2.GenericLinuxImage({self.region: ami_id})
        logger.info(f"Using OpenVPN image {ami_id} in {self.region}")

        # First-boot configuration of the Access Server
        self.bootstrap = bootstrap_commands(
            admin_password=config.admin_password.resolve(self),
            username=config.vpn_username.resolve(self),
            user_password=config.vpn_password.resolve(self),
        )
        self.user_data = ec2.UserData.for_linux(shebang="#!/bin/bash")
        self.user_data.add_commands(*(c.command for c in self.bootstrap))
        for command in self.bootstrap:
            logger.debug(f"Bootstrap step {command.step.value}: {command}")

        # Singleton appliance: self-healing, never scaled
        self.asg = autoscaling.AutoScalingGroup(
            self, "ASG",
            vpc=vpc,
            instance_type=ec2.InstanceType(config.instance_type),
            machine_image=machine_image,
            key_pair=ec2.KeyPair.from_key_pair_name(self, "KeyPair", config.key_name.resolve(self)),
            min_capacity=1,
            max_capacity=1,
            desired_capacity=1,
            vpc_subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PUBLIC),
            security_group=openvpn_sg,
            user_data=self.user_data,
            notifications=[
                autoscaling.NotificationConfiguration(topic=topic)
            ]
        )
