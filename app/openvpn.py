"""OpenVPN Access Server definitions shared by the stacks.

Nothing here creates CDK resources: the image table, ingress rules, bootstrap
commands and DNS naming are plain data so they can be checked without
synthesizing a stack.
"""
import shlex
from dataclasses import dataclass
from enum import Enum
from typing import List, Mapping

from aws_cdk import Token

from app.errors import UnsupportedRegionError

# OpenVPN Access Server marketplace images
OPENVPN_AMIS: Mapping[str, str] = {
    "us-east-1": "ami-056907df001eeca0e",
    "eu-west-1": "ami-0063fa0451e11ca13",
    "eu-west-2": "ami-0d885004ea1a5448e",
    "ap-south-1": "ami-08140c4d18b490e59",
    "ap-southeast-1": "ami-05f71a611e1c713a6",
}

SACLI = "/usr/local/openvpn_as/scripts/sacli"
COMPLETION_MESSAGE = "Updated OpenVPN config successfully"


def resolve_image(region: str) -> str:
    if Token.is_unresolved(region) or region not in OPENVPN_AMIS:
        raise UnsupportedRegionError(region)
    return OPENVPN_AMIS[region]


@dataclass(frozen=True)
class IngressRule:
    protocol: str
    port: int
    description: str


INGRESS_RULES = (
    IngressRule("tcp", 22, "SSH administration"),
    IngressRule("tcp", 943, "Access Server admin web UI"),
    IngressRule("tcp", 443, "Access Server web UI and TCP tunnel"),
    IngressRule("udp", 1194, "OpenVPN UDP tunnel"),
)


class BootstrapStep(Enum):
    ADMIN_PASSWORD = 1
    REROUTE_GATEWAY = 2
    USER_TYPE = 3
    USER_AUTOLOGIN = 4
    USER_PASSWORD = 5
    START_SERVICE = 6
    COMPLETION_MARKER = 7


@dataclass(frozen=True)
class BootstrapCommand:
    step: BootstrapStep
    command: str
    sensitive: bool = False

    def __str__(self):
        if self.sensitive:
            return f"<{self.step.name.lower()}: redacted>"
        return self.command


HEREDOC_DELIMITER = "OPENVPN_EOF"


def _shell_word(value: str, variable: str, prefix: str = ""):
    """Quote ``prefix + value`` for the boot script.

    Literal values are quoted at synth time. A deploy-time value (an SSM
    reference) is only known to CloudFormation, so it is read into
    ``variable`` through a quoted heredoc, which the shell never expands,
    and referenced as ``"$variable"``. Returns ``(binding, word)``.
    """
    if Token.is_unresolved(value):
        binding = f"{variable}=$(cat <<'{HEREDOC_DELIMITER}'\n{value}\n{HEREDOC_DELIMITER}\n)"
        return binding, f'"{prefix}${variable}"'
    return None, shlex.quote(prefix + value)


def _script(bindings, line: str) -> str:
    return "\n".join([b for b in bindings if b] + [line])


def _sacli(*words: str) -> str:
    return " ".join([SACLI, *words])


def bootstrap_commands(admin_password: str, username: str, user_password: str) -> List[BootstrapCommand]:
    """First-boot commands configuring the appliance, in execution order.

    Routing mode and user properties only take effect with the final
    ``sacli start``, so they must be written before it.
    """
    admin_binding, admin_word = _shell_word(admin_password, "OPENVPN_ADMIN_PASSWORD", prefix="openvpn:")
    user_binding, user_word = _shell_word(username, "OPENVPN_USER")
    password_binding, password_word = _shell_word(user_password, "OPENVPN_USER_PASSWORD")

    return [
        BootstrapCommand(
            BootstrapStep.ADMIN_PASSWORD,
            _script([admin_binding], f"echo {admin_word} | chpasswd"),
            sensitive=True,
        ),
        BootstrapCommand(
            BootstrapStep.REROUTE_GATEWAY,
            _sacli("--key", "vpn.client.routing.reroute_gw", "--value", "true", "ConfigPut"),
        ),
        BootstrapCommand(
            BootstrapStep.USER_TYPE,
            _script([user_binding], _sacli("--user", user_word, "--key", "type", "--value", "user_connect", "UserPropPut")),
        ),
        BootstrapCommand(
            BootstrapStep.USER_AUTOLOGIN,
            _script([user_binding], _sacli("--user", user_word, "--key", "prop_autologin", "--value", "true", "UserPropPut")),
        ),
        BootstrapCommand(
            BootstrapStep.USER_PASSWORD,
            _script(
                [user_binding, password_binding],
                _sacli("--user", user_word, "--new_pass", password_word, "SetLocalPassword"),
            ),
            sensitive=True,
        ),
        BootstrapCommand(BootstrapStep.START_SERVICE, _sacli("start")),
        BootstrapCommand(BootstrapStep.COMPLETION_MARKER, f"echo {shlex.quote(COMPLETION_MESSAGE)}"),
    ]


def dns_name(region: str, zone_name: str) -> str:
    return f"{region}.vpn.{zone_name}"


def admin_url(region: str, zone_name: str) -> str:
    return f"https://{dns_name(region, zone_name)}/admin"
