"""FFmpeg execution: encoder options, commands, staging and attempts."""

from cvrt.executor.command import build_downmix_command, build_encode_command
from cvrt.executor.encoder_args import (
    ENCODERS,
    EncoderArgs,
    UnsupportedEncodeError,
    build_encoder_args,
)
from cvrt.executor.estimate import estimate_encoding_time
from cvrt.executor.executor import EncodeAttempt, EncodeExecutor
from cvrt.executor.staging import StagingArea, next_task_token

__all__ = [
    "ENCODERS",
    "EncodeAttempt",
    "EncodeExecutor",
    "EncoderArgs",
    "StagingArea",
    "UnsupportedEncodeError",
    "build_downmix_command",
    "build_encode_command",
    "build_encoder_args",
    "estimate_encoding_time",
    "next_task_token",
]
