"""Error taxonomy for padbridge

Every error carries the pipeline stage that raised it so the top-level
process boundary can report which part of the bridge failed.
"""


class BridgeError(Exception):
    stage = "bridge"

    def __init__(self, message: str = "", stage: str = None):
        if stage is not None:
            self.stage = stage
        super().__init__(message)

    def __str__(self):
        msg = super().__str__()
        return f"[{self.stage}] {msg}" if msg else f"[{self.stage}]"


class ConfigError(BridgeError):
    stage = "config"


class DeviceNotFound(BridgeError):
    stage = "device"


class DeviceDisconnected(BridgeError):
    stage = "device"


class SessionUnreachable(BridgeError):
    stage = "session"


class PublishError(BridgeError):
    stage = "publish"


class OperationCancelled(BridgeError):
    stage = "shutdown"
