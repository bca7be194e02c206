from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from utils import Endpoint


class ForwardError(Exception):
    pass


class StartupConfigError(ForwardError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return f"StartupConfigError: {self.message}"


class ConnectError(ForwardError):
    action = "Connecting to"

    def __init__(
        self,
        endpoint: 'Endpoint',
        cause: BaseException,
    ):
        super().__init__(endpoint, cause)
        self.endpoint = endpoint
        self.cause = cause

    def __str__(self):
        return f"{self.action} {self.endpoint}: {self.cause!r}"


class ProbeConnectError(ConnectError):
    pass


class TargetConnectError(ConnectError):
    pass


class BindError(ConnectError):
    action = "Listening on"


class ServiceError(ForwardError):
    def __init__(
        self,
        component: str,
        cause: BaseException,
    ):
        super().__init__(component, cause)
        self.component = component
        self.cause = cause

    def __str__(self):
        return f"{self.component} failed: {self.cause}"
