import aws_cdk as cdk
import pytest

from app.config import load_config
from app.deployment import compose

BASE_CONTEXT = {
    "region": "us-east-1",
    "parameter_source": "context",
    "openvpn-hosted-zone": "Z0123456789ABC",
    "openvpn-zone-name": "example.com",
    "openvpn-admin-passwd": "admin-secret",
    "openvpn-keyname": "openvpn-key",
    "openvpn-user-name": "alice",
    "openvpn-user-passwd": "user-secret",
    "@aws-cdk/aws-autoscaling:generateLaunchTemplateInsteadOfLaunchConfig": True,
}


@pytest.fixture
def context():
    return dict(BASE_CONTEXT)


@pytest.fixture
def make_app(context):
    def _make_app(**overrides):
        return cdk.App(context={**context, **overrides})
    return _make_app


@pytest.fixture
def deploy(make_app):
    def _deploy(**overrides):
        app = make_app(**overrides)
        return compose(app, load_config(app))
    return _deploy
