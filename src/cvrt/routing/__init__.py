"""Stream routing: which streams to copy and which to downmix."""

from cvrt.routing.router import (
    SURROUND_CHANNELS,
    AudioMode,
    EncodePlan,
    route_streams,
)

__all__ = ["SURROUND_CHANNELS", "AudioMode", "EncodePlan", "route_streams"]
