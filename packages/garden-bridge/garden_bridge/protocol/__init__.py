"""Protocol layer — envelope, gateway frames and parameter models."""

from garden_bridge.protocol.constants import ErrorCode, FrameType
from garden_bridge.protocol.envelope import CommandRequest, CommandResult

__all__ = ["CommandRequest", "CommandResult", "ErrorCode", "FrameType"]
