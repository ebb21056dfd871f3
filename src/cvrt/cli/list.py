"""CLI list commands: supported output formats and codecs."""

import click

from cvrt.cli.output import json_output_data
from cvrt.config.models import OUTPUT_FORMATS
from cvrt.executor.encoder_args import ENCODERS


@click.group("list")
def list_group() -> None:
    """List supported output formats and codecs."""
    pass


@list_group.command("formats")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
def list_formats(json_output: bool) -> None:
    """Show output containers and how subtitles are carried."""
    if json_output:
        json_output_data(
            {
                name: {"muxer": muxer, "subtitle_codec": subtitle_codec}
                for name, (muxer, subtitle_codec) in OUTPUT_FORMATS.items()
            }
        )
        return

    for name, (muxer, subtitle_codec) in OUTPUT_FORMATS.items():
        click.echo(f"{name:<5} muxer={muxer} subtitles={subtitle_codec}")


@list_group.command("codecs")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
def list_codecs(json_output: bool) -> None:
    """Show target codecs and the encoder each backend uses."""
    if json_output:
        json_output_data(
            {
                codec: {kind.value: name for kind, name in encoders.items()}
                for codec, encoders in ENCODERS.items()
            }
        )
        return

    for codec, encoders in ENCODERS.items():
        names = ", ".join(f"{kind.value}={name}" for kind, name in encoders.items())
        click.echo(f"{codec:<5} {names}")
