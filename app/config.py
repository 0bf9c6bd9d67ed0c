# Deployment configuration
import logging
import os
from dataclasses import dataclass, fields
from typing import Optional

from aws_cdk import aws_ssm as ssm
from constructs import Construct

from app.errors import DeploymentDefinitionError, MissingParameterError

logger = logging.getLogger("openvpn_app.config")

# SSM parameter names, also accepted as context keys
PARAMETER_NAMES = {
    "hosted_zone": "openvpn-hosted-zone",
    "zone_name": "openvpn-zone-name",
    "admin_password": "openvpn-admin-passwd",
    "key_name": "openvpn-keyname",
    "vpn_username": "openvpn-user-name",
    "vpn_password": "openvpn-user-passwd",
}

PARAMETER_SOURCES = ("ssm", "context")


@dataclass(frozen=True)
class Parameter:
    """A deployment parameter, either a literal value or an SSM reference."""

    name: str
    value: Optional[str] = None

    def resolve(self, scope: Construct) -> str:
        if self.value is not None:
            return self.value
        # Resolved by CloudFormation in the consuming stack
        return ssm.StringParameter.value_for_string_parameter(scope, self.name)


@dataclass(frozen=True)
class VpnConfig:
    region: str
    hosted_zone: Parameter
    zone_name: Parameter
    admin_password: Parameter
    key_name: Parameter
    vpn_username: Parameter
    vpn_password: Parameter
    instance_type: str = "t3.large"
    vpc_cidr: str = "10.0.0.0/16"
    allowed_cidr: str = "0.0.0.0/0"
    restrict_permissions: bool = False
    retry_attempts: int = 2
    reserved_concurrency: Optional[int] = None
    dead_letter_queue: bool = False

    def parameters(self):
        return {name: getattr(self, name) for name in PARAMETER_NAMES}


def _to_bool(key, value):
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "1", "yes"):
        return True
    if text in ("false", "0", "no"):
        return False
    raise DeploymentDefinitionError(f"Context value {key}={value!r} is not a boolean")


def _to_int(key, value):
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise DeploymentDefinitionError(f"Context value {key}={value!r} is not an integer") from e


def load_config(scope: Construct) -> VpnConfig:
    """Gather every deployment setting from CDK context and the environment.

    Required parameters come from context when given there; otherwise, with
    ``parameter_source=ssm`` (the default), they become SSM references that
    CloudFormation resolves at deploy time. Raises ``MissingParameterError``
    listing every absent parameter before any stack is defined.
    """
    node = scope.node

    source = node.try_get_context("parameter_source") or "ssm"
    if source not in PARAMETER_SOURCES:
        raise DeploymentDefinitionError(
            f"parameter_source must be one of {', '.join(PARAMETER_SOURCES)}, got {source!r}"
        )

    parameters = {}
    missing = []
    for field_name, parameter_name in PARAMETER_NAMES.items():
        value = node.try_get_context(parameter_name)
        if value is not None:
            value = str(value)
            if not value.strip():
                missing.append(parameter_name)
                continue
        elif source == "context":
            missing.append(parameter_name)
            continue
        parameters[field_name] = Parameter(parameter_name, value)

    if missing:
        raise MissingParameterError(missing)

    region = node.try_get_context("region") or os.getenv("CDK_DEFAULT_REGION")
    if not region:
        raise DeploymentDefinitionError(
            "No deployment region: set context 'region' or CDK_DEFAULT_REGION"
        )

    optional = {}
    for key in ("instance_type", "vpc_cidr", "allowed_cidr"):
        value = node.try_get_context(key)
        if value is not None:
            optional[key] = str(value)
    for key in ("restrict_permissions", "dead_letter_queue"):
        value = node.try_get_context(key)
        if value is not None:
            optional[key] = _to_bool(key, value)
    value = node.try_get_context("retry_attempts")
    if value is not None:
        optional["retry_attempts"] = _to_int("retry_attempts", value)
    value = node.try_get_context("reserved_concurrency")
    if value is not None:
        optional["reserved_concurrency"] = _to_int("reserved_concurrency", value)

    config = VpnConfig(region=region, **parameters, **optional)

    if not 0 <= config.retry_attempts <= 2:
        raise DeploymentDefinitionError(
            f"retry_attempts must be between 0 and 2, got {config.retry_attempts}"
        )
    if config.reserved_concurrency is not None and config.reserved_concurrency < 1:
        raise DeploymentDefinitionError(
            f"reserved_concurrency must be at least 1, got {config.reserved_concurrency}"
        )

    from_ssm = [p.name for p in config.parameters().values() if p.value is None]
    logger.info(f"Loaded configuration for region {config.region} (source: {source})")
    if from_ssm:
        logger.info(f"Resolving from SSM at deploy time: {', '.join(from_ssm)}")
    return config


def describe(config: VpnConfig) -> dict:
    """Non-secret settings, for logging."""
    secret = set(PARAMETER_NAMES)
    return {f.name: getattr(config, f.name) for f in fields(config) if f.name not in secret}
