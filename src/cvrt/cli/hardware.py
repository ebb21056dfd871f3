"""CLI hardware command: show detected encode capabilities."""

from __future__ import annotations

import math
from typing import Any

import click

from cvrt.cli.config_loader import load_config_or_exit
from cvrt.cli.output import json_output_data
from cvrt.hardware import (
    HardwareProfile,
    detect_hardware_profile,
    select_encoder,
)
from cvrt.hardware.selection import EncoderChoice, rank_backends


def _profile_to_dict(profile: HardwareProfile, choice: EncoderChoice) -> dict[str, Any]:
    backends = {}
    for kind, score in rank_backends(profile):
        capability = profile.capability(kind)
        backends[kind.value] = {
            "available": capability.available,
            "ten_bit": capability.supports_ten_bit,
            "av1": capability.supports_next_gen_codec,
            "device": capability.device_handle,
            "score": None if math.isinf(score) else score,
        }
    return {
        "cpu": {"vendor": profile.cpu_vendor.value, "cores": profile.cpu_cores},
        "gpus": sorted(h.value for h in profile.gpu_hints),
        "backends": backends,
        "selected": choice.primary.value,
        "fallback": choice.fallback.value if choice.fallback else None,
    }


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


@click.command("hardware")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_context
def hardware_command(ctx: click.Context, json_output: bool) -> None:
    """Detect GPUs and encoders and show which backend would be used."""
    config = load_config_or_exit(ctx, json_output=json_output)
    profile = detect_hardware_profile(config.tools)
    choice = select_encoder(profile)

    if json_output:
        json_output_data(_profile_to_dict(profile, choice))
        return

    gpus = ", ".join(sorted(h.value for h in profile.gpu_hints)) or "none"
    click.echo(f"CPU: {profile.cpu_vendor.value} ({profile.cpu_cores} cores)")
    click.echo(f"GPUs: {gpus}")
    click.echo("")
    click.echo(f"{'Backend':<10} {'Available':<10} {'10-bit':<7} {'AV1':<5} Score")
    for kind, score in rank_backends(profile):
        capability = profile.capability(kind)
        score_text = "-" if math.isinf(score) else f"{score:g}"
        click.echo(
            f"{kind.value:<10} {_yes_no(capability.available):<10} "
            f"{_yes_no(capability.supports_ten_bit):<7} "
            f"{_yes_no(capability.supports_next_gen_codec):<5} {score_text}"
        )
    click.echo("")
    fallback = f" (fallback: {choice.fallback.value})" if choice.fallback else ""
    click.echo(f"Selected encoder: {choice.primary.value}{fallback}")
