#!/usr/bin/env python3
"""
Airdrop Proofs CLI

Command-line interface for building airdrop Merkle trees, generating and
verifying recipient proofs, uploading trees and inspecting claim status.
"""

import json
import logging
import sys
from typing import Optional

import click
from eth_abi.exceptions import EncodingError
from rich.console import Console
from rich.table import Table

from .api.chain_client import ChainClient, ChainClientError
from .api.claim_index import ClaimIndexClient
from .api.status_service import AirdropStatus, AirdropStatusService, StatusReason
from .api.store_client import TreeStoreClient, TreeStoreError
from .balance import format_balance_with_usd
from .main import (
    build_airdrop_tree,
    generate_recipient_proof,
    load_allocations,
    load_tree_file,
    store_airdrop_tree,
    verify_recipient_proof,
)
from .merkle import IndexOutOfRange, InvalidTreeError
from .timing import CommitmentMetadata

# Configure rich console
console = Console()
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def print_status_table(status: AirdropStatus, decimals: int, usd_price: Optional[float]):
    """Print recipient status as a rich table."""
    table = Table(title="Airdrop Recipients")
    table.add_column("#", style="cyan")
    table.add_column("Address", style="cyan")
    table.add_column("Allocated", style="green")
    table.add_column("Available", style="green")
    table.add_column("Status")
    table.add_column("Treasury")

    for r in status.recipients:
        allocated = format_balance_with_usd(r.allocated_amount, decimals, usd_price)
        available = format_balance_with_usd(r.available_amount, decimals, usd_price)
        label = r.status.value
        if r.assumed_claimed:
            label += " (assumed)"
        table.add_row(
            str(r.index),
            r.address,
            allocated.formatted,
            available.formatted,
            label,
            "yes" if r.is_treasury else "",
        )

    console.print(table)
    console.print(f"Root: {status.root}")
    console.print(f"Lockup duration: {status.lockup_duration_hours}h ({status.timing_source.value})")
    if status.degraded:
        console.print(f"[yellow]Degraded sources: {', '.join(status.degraded)}[/yellow]")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx, verbose: bool):
    """
    Airdrop Proofs CLI - Merkle trees, proofs and claim status for airdrops.

    Trees follow the OpenZeppelin StandardMerkleTree format checked by the
    airdrop contract.
    """
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("allocations", type=click.Path(exists=True, dir_okay=False))
@click.option("--treasury", type=str, help="Treasury address, appended as the last recipient")
@click.option("--treasury-amount", type=int, default=0, show_default=True, help="Treasury allocation")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write the tree dump to this file")
def build(allocations: str, treasury: Optional[str], treasury_amount: int, output: Optional[str]):
    """
    Build an airdrop tree from an allocation file.

    ALLOCATIONS: CSV (address,amount) or JSON allocation list
    """
    try:
        rows = load_allocations(allocations)
        result = build_airdrop_tree(rows, treasury, treasury_amount)
    except (ValueError, EncodingError, OSError) as e:
        raise click.ClickException(str(e))

    dump = result.tree.dump()
    if output:
        with open(output, "w") as f:
            json.dump(dump, f, indent=2)
        console.print(f"[green]Tree written to {output}[/green]")
    else:
        print(json.dumps(dump, indent=2))

    console.print(f"Root: {result.tree.root_hex}", highlight=False)
    console.print(f"Recipients: {result.recipient_count}")
    console.print(f"Total amount: {result.total_amount}")


@cli.command()
@click.argument("tree_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("index", type=int)
def proof(tree_file: str, index: int):
    """
    Generate the proof for one recipient.

    TREE_FILE: Tree dump (or stored payload) JSON

    INDEX: Recipient index in the tree
    """
    try:
        result = generate_recipient_proof(tree_file, index)
    except (IndexOutOfRange, ValueError, OSError) as e:
        logger.error(f"Error generating recipient proof: {e}")
        raise click.ClickException(str(e))

    output = {
        "proof": [f"0x{step.hex()}" for step in result.proof],
        "root": f"0x{result.root.hex()}",
        "metadata": result.metadata,
    }
    print(json.dumps(output, indent=2))


@cli.command()
@click.argument("root", type=str)
@click.argument("address", type=str)
@click.argument("amount", type=int)
@click.argument("proof_steps", nargs=-1, type=str)
def verify(root: str, address: str, amount: int, proof_steps):
    """
    Verify a proof for (ADDRESS, AMOUNT) against ROOT.

    PROOF_STEPS: Sibling hashes in proof order
    """
    try:
        valid = verify_recipient_proof(root, address, amount, proof_steps)
    except (ValueError, EncodingError) as e:
        raise click.ClickException(str(e))

    if valid:
        console.print("[green]Proof is valid[/green]")
    else:
        console.print("[red]Proof is invalid[/red]")
        sys.exit(1)


@cli.command()
@click.argument("tree_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--token", required=True, type=str, help="Token address")
@click.option("--chain-id", required=True, type=int, help="Chain ID")
@click.option("--lockup-end-time", type=int, help="Lockup end time in milliseconds")
@click.option("--lockup-duration", type=int, default=86400, show_default=True, help="Lockup duration in seconds")
@click.option("--airdrop-address", envvar="AIRDROP_CONTRACT_ADDRESS", help="Airdrop contract, used to read the lockup end time")
def upload(
    tree_file: str,
    token: str,
    chain_id: int,
    lockup_end_time: Optional[int],
    lockup_duration: int,
    airdrop_address: Optional[str],
):
    """
    Upload a tree to the content store.

    Without --lockup-end-time the lockup is read from the chain.
    """
    try:
        tree, stored_metadata = load_tree_file(tree_file)
        metadata = stored_metadata
        chain_client = None
        if lockup_end_time is not None:
            metadata = CommitmentMetadata(lockup_end_time=lockup_end_time, lockup_duration=lockup_duration)
        elif metadata is None:
            chain_client = ChainClient()

        cid = store_airdrop_tree(
            tree,
            token,
            chain_id,
            TreeStoreClient(),
            metadata=metadata,
            chain_client=chain_client,
            airdrop_address=airdrop_address,
        )
    except (TreeStoreError, ChainClientError, InvalidTreeError, ValueError, OSError) as e:
        logger.error(f"Error uploading tree: {e}")
        raise click.ClickException(str(e))

    console.print(f"[green]Merkle tree stored with CID: {cid}[/green]")


@cli.command()
@click.argument("token", type=str)
@click.option("--treasury", required=True, type=str, help="Treasury address")
@click.option("--chain-id", required=True, type=int, help="Chain ID")
@click.option("--airdrop-address", envvar="AIRDROP_CONTRACT_ADDRESS", help="Airdrop contract address")
@click.option("--decimals", type=int, default=18, show_default=True, help="Token decimals")
@click.option("--usd-price", type=float, help="USD price of one token")
@click.option(
    "--format",
    "format_output",
    type=click.Choice(["table", "json"]),
    default="table",
    show_default=True,
    help="Output format",
)
def status(
    token: str,
    treasury: str,
    chain_id: int,
    airdrop_address: Optional[str],
    decimals: int,
    usd_price: Optional[float],
    format_output: str,
):
    """
    Show the claim status of every recipient of TOKEN's airdrop.
    """
    service = AirdropStatusService(
        store_client=TreeStoreClient(),
        claim_index=ClaimIndexClient(),
    )
    result = service.get_airdrop_status(token, treasury, chain_id, airdrop_address)

    if format_output == "json":
        print(json.dumps(result.to_dict(decimals, usd_price), indent=2))
    elif result.reason is StatusReason.OK:
        print_status_table(result, decimals, usd_price)

    if result.reason is StatusReason.NOT_CONFIGURED:
        console.print(f"[yellow]No airdrop configured: {result.error}[/yellow]")
    elif result.reason is StatusReason.UNAVAILABLE:
        raise click.ClickException(f"Airdrop data temporarily unavailable: {result.error}")


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Host to bind to")
@click.option("--port", default=8000, show_default=True, type=int, help="Port to bind to")
@click.option("--dev", is_flag=True, help="Enable auto-reload")
def serve(host: str, port: int, dev: bool):
    """Run the REST API server."""
    from .api.rest_api import run_server

    run_server(host=host, port=port, dev=dev)


if __name__ == "__main__":
    cli()
