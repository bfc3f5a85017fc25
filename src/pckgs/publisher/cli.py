"""The `pckgs-publish` command-line interface."""

import asyncio
import importlib.metadata
from pathlib import Path

import click

from .config import DEFAULT_TIMEOUT_SECONDS, PublishConfig, parse_bool
from .crypto import checksum
from .exceptions import PublishError
from .models import DEFAULT_REGISTRY_URL, archive_name_for
from .packaging.archiver import build_archive, write_archive
from .packaging.manifest import apply_overrides, load_manifest
from .packaging.orchestrator import publish_package

try:
    __version__ = importlib.metadata.version("pckgs-publisher")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.0.0-dev"


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.version_option(
    __version__,
    "-V",
    "--version",
    prog_name="pckgs-publish",
    message="%(prog)s version %(version)s",
)
def cli() -> None:
    """Package a folder and publish it to the pckgs registry."""
    pass


@cli.command("publish")
@click.option(
    "--package-folder",
    envvar="INPUT_PACKAGE_FOLDER",
    default=".",
    show_default=True,
    help="Folder containing package.json and the files to publish.",
)
@click.option(
    "--access-token",
    envvar="INPUT_ACCESS_TOKEN",
    required=True,
    help="Registry access token.",
)
@click.option(
    "--is-public",
    envvar="INPUT_IS_PUBLIC",
    default="false",
    show_default=True,
    help="Publish the package publicly (true/false).",
)
@click.option(
    "--legacy-bool-parsing",
    is_flag=True,
    envvar="PCKGS_LEGACY_BOOL_PARSING",
    help="Treat only the exact string 'true' as true for boolean inputs.",
)
@click.option(
    "--version",
    "package_version",
    envvar="INPUT_VERSION",
    help="Override the version from package.json.",
)
@click.option("--contributor-email", envvar="INPUT_CONTRIBUTOR_EMAIL")
@click.option("--contributor-name", envvar="INPUT_CONTRIBUTOR_NAME")
@click.option("--contributor-url", envvar="INPUT_CONTRIBUTOR_URL")
@click.option(
    "--registry-url",
    envvar="PCKGS_REGISTRY_URL",
    default=DEFAULT_REGISTRY_URL,
    show_default=True,
)
@click.option(
    "--timeout",
    envvar="PCKGS_TIMEOUT",
    type=float,
    default=DEFAULT_TIMEOUT_SECONDS,
    show_default=True,
    help="Deadline in seconds for the whole build and publish run.",
)
def publish_command(
    package_folder: str,
    access_token: str,
    is_public: str,
    legacy_bool_parsing: bool,
    package_version: str | None,
    contributor_email: str | None,
    contributor_name: str | None,
    contributor_url: str | None,
    registry_url: str,
    timeout: float,
) -> None:
    """Builds the package archive and publishes it to the registry."""
    click.echo("🚀 Publishing package...")
    try:
        config = PublishConfig(
            package_folder=package_folder,
            access_token=access_token,
            is_public=parse_bool(
                is_public, legacy=legacy_bool_parsing, name="is_public"
            ),
            version=package_version,
            contributor_email=contributor_email,
            contributor_name=contributor_name,
            contributor_url=contributor_url,
            registry_url=registry_url,
            timeout=timeout,
        )
        result = asyncio.run(publish_package(config, manifest_fallback_dir=Path.cwd()))
    except PublishError as e:
        click.secho(f"❌ Publishing Failed:\n{e}", fg="red", err=True)
        raise click.Abort() from e

    click.secho(
        f"✅ Upload successful! isPublic: {str(result.is_public).lower()}", fg="green"
    )


@cli.command("pack")
@click.argument(
    "folder",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    default=".",
    required=False,
)
@click.option(
    "--out",
    type=click.Path(resolve_path=True),
    default=".",
    help="Output file, or an existing directory to write the archive into.",
)
@click.option(
    "--version", "package_version", help="Override the version from package.json."
)
def pack_command(folder: str, out: str, package_version: str | None) -> None:
    """Builds the package archive locally without publishing it."""
    click.echo(f"📦 Packing '{folder}'...")
    try:
        metadata = apply_overrides(load_manifest(folder), version=package_version)
        archive = asyncio.run(build_archive(folder, archive_name_for(metadata)))
        written = write_archive(archive, out)
    except PublishError as e:
        click.secho(f"❌ Packing Failed:\n{e}", fg="red", err=True)
        raise click.Abort() from e

    click.secho(f"✅ Archive written: {written}", fg="green")
    click.echo(f"  Name: {archive.name}")
    click.echo(f"  Size: {archive.size} bytes")
    click.echo(f"  SHA-256: {archive.checksum}")


@cli.command("checksum")
@click.argument(
    "archive_file", type=click.Path(exists=True, dir_okay=False, resolve_path=True)
)
def checksum_command(archive_file: str) -> None:
    """Prints the base64-encoded SHA-256 the registry verifies uploads with."""
    try:
        click.echo(checksum(Path(archive_file).read_bytes()))
    except PublishError as e:
        click.secho(f"❌ Checksum failed: {e}", fg="red", err=True)
        raise click.Abort() from e


main = cli
