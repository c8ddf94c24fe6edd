"""Fetch command for the Horizons SPK CLI."""

import click
from pydantic import ValidationError

from horizons_spk.models.spk import SpkFormat, SpkRequest
from horizons_spk.services.spk_service import SpkError, fetch_spk

FORMAT_CHOICES = [f.value for f in SpkFormat]


@click.command()
@click.argument("object_name")
@click.argument("start")
@click.argument("stop")
@click.argument("email")
@click.argument("elements")
@click.option(
    "--format",
    "spk_format",
    type=click.Choice(FORMAT_CHOICES),
    default=SpkFormat.BINARY.value,
    show_default=True,
    help="SPK output format (text = transfer format .xsp, others binary .bsp)",
)
@click.option("--output", "-o", help="Local filename (default: <SPK ID><suffix>)")
def fetch(object_name, start, stop, email, elements, spk_format, output):
    """Generate an SPK file for user-supplied osculating ELEMENTS and download it.

    START and STOP are calendar dates between 1900 and 2100; STOP must be at
    least 32 days after START. EMAIL is sent to Horizons and used as the
    anonymous FTP password.
    """
    try:
        request = SpkRequest(
            object_name=object_name,
            start=start,
            stop=stop,
            email=email,
            elements=elements,
            spk_format=SpkFormat(spk_format),
            output=output,
        )
    except ValidationError as e:
        messages = "; ".join(error["msg"] for error in e.errors())
        raise click.ClickException(f"Invalid input: {messages}")

    try:
        local_path = fetch_spk(request)
    except SpkError as e:
        raise click.ClickException(str(e))
    except Exception as e:
        raise click.ClickException(f"Failed to fetch SPK file: {str(e)}")

    click.echo(f"SPK file retrieved: {local_path}")
