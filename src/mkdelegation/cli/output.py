"""Rich renderables for delegation inspection output.

Delegation content is always wrapped in :class:`~rich.text.Text` so that it
is never interpreted as console markup.
"""
from __future__ import annotations

import base64
import datetime

from rich.console import Group, RenderableType
from rich.table import Table
from rich.text import Text

from mkdelegation.resolver import DelegationInfo


def format_timestamp(seconds: int) -> str:
    """Render epoch seconds as an RFC 822 style UTC date."""
    moment = datetime.datetime.fromtimestamp(seconds, tz=datetime.timezone.utc)
    return moment.strftime("%d %b %y %H:%M UTC")


def delegation_table(info: DelegationInfo, depth: int = 0) -> Table:
    """Build a Property/Value table for *info*, nesting proof delegations.

    The raw proof links are only listed at the top level; nested tables
    show the resolved proofs instead.
    """
    table = Table(show_header=True, show_lines=True)
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Value", overflow="fold")

    table.add_row("Issuer", Text(info.issuer))
    table.add_row("Audience", Text(info.audience))
    table.add_row("Version", Text(info.version))
    table.add_row("Nonce", Text(info.nonce or ""))
    if depth == 0:
        table.add_row("Proofs", Text("\n".join(info.proofs) or "None"))
    table.add_row("Signature (b64)", base64.b64encode(info.signature).decode("ascii"))
    if info.expiration is not None:
        table.add_row(
            "Expiration", f"{info.expiration} ({format_timestamp(info.expiration)})"
        )
    else:
        table.add_row("Expiration", "No expiration")
    table.add_row("Not Before", str(info.not_before))
    table.add_row("Capabilities", _capabilities_table(info))
    table.add_row("Facts", _facts_table(info))
    if info.proof_delegations:
        table.add_row("Proof Delegations", _proof_delegations(info, depth + 1))
    return table


def _capabilities_table(info: DelegationInfo) -> RenderableType:
    if not info.capabilities:
        return "None"
    table = Table(show_header=True, show_lines=True)
    table.add_column("#", justify="center")
    table.add_column("Can")
    table.add_column("With", overflow="fold")
    for index, capability in enumerate(info.capabilities, start=1):
        table.add_row(str(index), Text(capability.can), Text(capability.with_))
    return table


def _facts_table(info: DelegationInfo) -> RenderableType:
    if not info.facts:
        return "None"
    table = Table(show_header=True, show_lines=True)
    table.add_column("#", justify="center")
    table.add_column("Fact", overflow="fold")
    for index, fact in enumerate(info.facts, start=1):
        table.add_row(str(index), Text(str(fact)))
    return table


def _proof_delegations(info: DelegationInfo, depth: int) -> RenderableType:
    parts: list[RenderableType] = []
    for index, proof in enumerate(info.proof_delegations, start=1):
        parts.append(Text(f"=== Proof Delegation {index} ===", style="bold"))
        parts.append(delegation_table(proof, depth))
    return Group(*parts)


__all__ = ["delegation_table", "format_timestamp"]
