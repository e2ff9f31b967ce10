class OrchestratorException(Exception):
    pass


class InstanceNotFound(OrchestratorException):
    pass


class MalformedInput(OrchestratorException, ValueError):
    pass


class InvalidCommandOutput(OrchestratorException, ValueError):
    pass
