from aws_cdk import (
    aws_ec2 as ec2,
    Stack
)
from constructs import Construct

from app.openvpn import INGRESS_RULES

class SgStack(Stack):
    def __init__(self, scope: Construct, id: str, vpc, config, **kwargs):
        super().__init__(scope, id, **kwargs)

        # ✅ Security Group for the OpenVPN appliance
        self.openvpn_sg = ec2.SecurityGroup(
            self, "OpenVPNSg",
            vpc=vpc,
            description="Allow SSH, Access Server web UI and OpenVPN tunnel traffic",
            allow_all_outbound=True
        )

        # Open to any source unless allowed_cidr narrows it
        peer = ec2.Peer.ipv4(config.allowed_cidr)
        for rule in INGRESS_RULES:
            if rule.protocol == "udp":
                port = ec2.Port.udp(rule.port)
            else:
                port = ec2.Port.tcp(rule.port)
            self.openvpn_sg.add_ingress_rule(peer, port, rule.description)
