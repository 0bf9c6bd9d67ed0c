class DeploymentDefinitionError(Exception):
    """Raised when the deployment cannot be defined; nothing is synthesized."""


class MissingParameterError(DeploymentDefinitionError):
    def __init__(self, names):
        self.names = list(names)
        super().__init__(f"Missing required deployment parameters: {', '.join(self.names)}")


class UnsupportedRegionError(DeploymentDefinitionError):
    def __init__(self, region):
        self.region = region
        super().__init__(f"No OpenVPN machine image for region {region!r}")
