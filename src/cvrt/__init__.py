"""cvrt: batch video transcoding orchestrator.

Discovers media files, probes their streams with ffprobe, picks a hardware or
software HEVC encoder based on the host's capabilities and drives ffmpeg to
convert them.
"""

__version__ = "0.4.0"
