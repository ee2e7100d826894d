"""CLI entry point for mkdelegation.

Invoked as::

    mkdelegation [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m mkdelegation.cli.main

Commands
--------
gen        Generate a delegation from an issuer key to an audience DID
parse      Parse and display a delegation from a file or stdin
services   Generate the preset delegations between the service principals
version    Show version information
"""
from __future__ import annotations

import datetime
import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mkdelegation.builder import DelegationBuilder
from mkdelegation.cli.output import delegation_table
from mkdelegation.codec.archive import ArchiveCodec, format_delegation
from mkdelegation.config import Settings, load_settings
from mkdelegation.errors import DelegationError, UnknownCapabilityError
from mkdelegation.principal.did import parse_did
from mkdelegation.principal.signer import Ed25519Signer, Signer, WrappedSigner
from mkdelegation.resolver import ProofChainResolver
from mkdelegation.validator import CapabilityValidator

console = Console()


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="mkdelegation")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="JSON settings file (defaults to $MKDELEGATION_CONFIG).",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str, config_file: str | None) -> None:
    """Manage UCAN delegations for service interactions"""
    logging.basicConfig(level=getattr(logging, log_level.upper()))
    try:
        ctx.obj = load_settings(config_file)
    except DelegationError as exc:
        _fail(str(exc))


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from mkdelegation import __version__

    console.print(f"[bold]mkdelegation[/bold] v{__version__}")


# ------------------------------------------------------------------
# gen
# ------------------------------------------------------------------


@cli.command(name="gen")
@click.option(
    "--issuer-private-key-file",
    "-f",
    type=click.Path(),
    default=None,
    help="Path to PEM encoded Ed25519 private key of delegation issuer.",
)
@click.option(
    "--issuer-private-key",
    "-i",
    default=None,
    help="Multibase encoded Ed25519 private key of delegation issuer.",
)
@click.option(
    "--issuer-did-web",
    "-w",
    default=None,
    help="Optional did:web: of issuer; when provided wraps the did:key of the issuer.",
)
@click.option(
    "--audience-did-key",
    "-a",
    required=True,
    help="DID of delegation audience.",
)
@click.option(
    "--capabilities",
    "-c",
    multiple=True,
    required=True,
    help="Capability the issuer will authorize to the audience (repeatable).",
)
@click.option(
    "--skip-capability-validation",
    "-s",
    is_flag=True,
    default=False,
    help="Skip validation of capabilities against the known set.",
)
@click.option(
    "--expiration",
    "-e",
    type=int,
    default=0,
    help="Expiration time in UTC seconds since the Unix epoch (0 = never).",
)
@click.pass_obj
def gen_command(
    settings: Settings,
    issuer_private_key_file: str | None,
    issuer_private_key: str | None,
    issuer_did_web: str | None,
    audience_did_key: str,
    capabilities: tuple[str, ...],
    skip_capability_validation: bool,
    expiration: int,
) -> None:
    """Generate a UCAN delegation and print it as an archive identifier."""
    if issuer_private_key_file and issuer_private_key:
        _fail("--issuer-private-key-file and --issuer-private-key are mutually exclusive.")
    if not issuer_private_key_file and not issuer_private_key:
        _fail("one of --issuer-private-key-file or --issuer-private-key is required.")

    issuer: Signer
    if issuer_private_key_file:
        try:
            issuer = Ed25519Signer.from_pem(Path(issuer_private_key_file).read_bytes())
        except (OSError, ValueError) as exc:
            _fail(f"parsing issuer private key from file {issuer_private_key_file}: {exc}")
    else:
        try:
            issuer = Ed25519Signer.parse(str(issuer_private_key))
        except ValueError as exc:
            _fail(f"parsing issuer private key: {exc}")

    if issuer_did_web:
        if not issuer_did_web.startswith("did:web:"):
            _fail("issuer did:web: must start with 'did:web:' prefix")
        try:
            issuer = WrappedSigner(issuer, parse_did(issuer_did_web))
        except ValueError as exc:
            _fail(f"parsing issuer did web key ({issuer_did_web}): {exc}")

    try:
        audience = parse_did(audience_did_key)
    except ValueError as exc:
        _fail(f"parsing audience did key: {exc}")

    if not skip_capability_validation:
        try:
            CapabilityValidator(settings.known_abilities).check(capabilities)
        except UnknownCapabilityError as exc:
            _fail(
                "capabilities validation failed (pass --skip-capability-validation "
                f"to skip capabilities validation): {exc}"
            )

    try:
        delegation = DelegationBuilder(version=settings.ucan_version).build(
            issuer,
            audience,
            list(capabilities),
            expiration=expiration if expiration > 0 else None,
        )
        identifier = format_delegation(delegation)
    except DelegationError as exc:
        _fail(f"making delegation: {exc}")

    click.echo(identifier)


# ------------------------------------------------------------------
# parse
# ------------------------------------------------------------------


@cli.command(name="parse")
@click.argument("delegation_file", required=False, type=click.Path())
@click.option("--json", "-j", "as_json", is_flag=True, default=False, help="Output in JSON format.")
@click.pass_obj
def parse_command(settings: Settings, delegation_file: str | None, as_json: bool) -> None:
    """Parse and display a delegation from DELEGATION_FILE or stdin.

    \b
    Examples:
      mkdelegation parse delegation.b64
      cat delegation.b64 | mkdelegation parse
    """
    if delegation_file:
        path = Path(delegation_file)
        if not path.exists():
            _fail(f"file does not exist: {delegation_file}")
        content = path.read_text(encoding="utf-8")
    else:
        content = sys.stdin.read()
        if not content:
            _fail("no input provided via stdin and no file specified")

    try:
        delegation = ArchiveCodec().parse(content)
        info = ProofChainResolver(max_depth=settings.max_proof_depth).resolve(delegation)
    except DelegationError as exc:
        _fail(f"failed to parse delegation: {exc}")

    if as_json:
        click.echo(json.dumps(info.to_dict(), indent=2))
        return

    console.print("Delegation Information:")
    console.print(delegation_table(info))


# ------------------------------------------------------------------
# services
# ------------------------------------------------------------------


@cli.command(name="services")
@click.option(
    "--upload-service-private-key",
    "-u",
    default=None,
    help="Multibase base64pad encoded Ed25519 private key of the Upload Service.",
)
@click.option(
    "--indexing-service-private-key",
    "-i",
    default=None,
    help="Multibase base64pad encoded Ed25519 private key of the Indexing Service.",
)
@click.option(
    "--storage-node-private-key",
    "-n",
    default=None,
    help="Multibase base64pad encoded Ed25519 private key of the Storage Node.",
)
@click.option("--json", "-j", "as_json", is_flag=True, default=False, help="Write JSON output to a file.")
@click.option("--save", "-s", is_flag=True, default=False, help="Save delegations to individual files.")
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False),
    default=".",
    show_default=True,
    help="Directory in which the timestamped output directory is created.",
)
def services_command(
    upload_service_private_key: str | None,
    indexing_service_private_key: str | None,
    storage_node_private_key: str | None,
    as_json: bool,
    save: bool,
    output_dir: str,
) -> None:
    """Generate delegations between the upload, indexing, and storage services.

    Missing keys are generated.
    """
    from mkdelegation.presets import (
        delegate_indexing_to_storage,
        delegate_indexing_to_upload,
        delegate_storage_to_upload,
    )

    if save and as_json:
        _fail("the --save and --json flags cannot be used together")

    try:
        upload = _parse_or_generate(upload_service_private_key)
        indexer = _parse_or_generate(indexing_service_private_key)
        storage = _parse_or_generate(storage_node_private_key)
    except ValueError as exc:
        _fail(f"parsing service private key: {exc}")

    services = [
        ("Upload Service", upload),
        ("Indexer Service", indexer),
        ("Storage Node", storage),
    ]
    delegations = [
        ("Indexer → Upload", "indexer-to-upload.b64",
         format_delegation(delegate_indexing_to_upload(indexer, upload))),
        ("Indexer → Storage", "indexer-to-storage.b64",
         format_delegation(delegate_indexing_to_storage(indexer, storage))),
        ("Storage → Upload", "storage-to-upload.b64",
         format_delegation(delegate_storage_to_upload(storage, upload))),
    ]

    if save:
        directory = _timestamped_dir(output_dir)
        console.print("Delegations saved to:")
        for _, filename, identifier in delegations:
            target = directory / filename
            target.write_text(identifier, encoding="utf-8")
            console.print(f"  - {escape(str(target))}")
        return

    if as_json:
        data = {
            "services": [
                {"name": name, "did": str(signer.did()), "secretKey": signer.format()}
                for name, signer in services
            ],
            "delegations": [
                {"path": path, "ucan": identifier} for path, _, identifier in delegations
            ],
        }
        target = _timestamped_dir(output_dir) / "output.json"
        target.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        console.print(f"JSON output has been saved to: {escape(str(target))}")
        return

    table = Table(title="Services", show_header=True, show_lines=True)
    table.add_column("Service", style="cyan")
    table.add_column("DID", overflow="fold")
    table.add_column("Secret Key", overflow="fold")
    for name, signer in services:
        table.add_row(name, str(signer.did()), signer.format())
    console.print(table)

    click.echo("\nDelegation Path\tBase64 Encoded UCAN")
    click.echo("---------------\t------------------")
    for path, _, identifier in delegations:
        click.echo(f"{path}\t{identifier}")


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _fail(message: str) -> NoReturn:
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False, soft_wrap=True)
    sys.exit(1)


def _parse_or_generate(private_key: str | None) -> Ed25519Signer:
    """Parse *private_key*, or generate a fresh key when it is empty."""
    if not private_key:
        return Ed25519Signer.generate()
    return Ed25519Signer.parse(private_key)


def _timestamped_dir(base: str) -> Path:
    """Create and return ``<base>/delegations_YYYYMMDD_HHMMSS``."""
    stamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    directory = Path(base) / f"delegations_{stamp}"
    directory.mkdir(parents=True, exist_ok=True)
    return directory


if __name__ == "__main__":
    cli()
