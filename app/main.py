import logging
import os
import sys

import aws_cdk as cdk

from app.config import describe, load_config
from app.deployment import compose
from app.errors import DeploymentDefinitionError

logger = logging.getLogger("openvpn_app")


def main(app=None):
    """Synthesize the deployment; exit with status 1 if it cannot be defined."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s %(message)s',
        datefmt='%Y-%m-%dT%H:%M:%S%z'
    )
    app = app or cdk.App()

    try:
        config = load_config(app)
        logger.info(f"Deployment settings: {describe(config)}")
        compose(app, config, account=os.getenv("CDK_DEFAULT_ACCOUNT"))
    except DeploymentDefinitionError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)

    return app.synth()
