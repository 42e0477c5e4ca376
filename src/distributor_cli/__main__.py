from __future__ import annotations
import json
import pathlib
import typer
from rich import print
import requests

from distributor_api.balances import parse_balance_map
from distributor_api.crypto import normalize_address
from distributor_api.errors import InvalidBalanceMap
from distributor_api.logutil import setup_logging
from distributor_api.models import MerkleDistributorInfo
from distributor_api.settings import settings
from distributor_sdk.verify import verify_distribution

app = typer.Typer(add_completion=False, no_args_is_help=True)


def _load_json(path: str):
    p = pathlib.Path(path)
    if not p.exists():
        print(f"[red]No such file: {path}[/red]")
        raise typer.Exit(code=1)
    try:
        return json.loads(p.read_text())
    except json.JSONDecodeError as e:
        print(f"[red]Invalid JSON in {path}: {e}[/red]")
        raise typer.Exit(code=1)


def _load_info(path: str) -> MerkleDistributorInfo:
    return MerkleDistributorInfo.model_validate(_load_json(path))


@app.callback()
def main(log_level: str = typer.Option(settings.log_level, help="Logging level")):
    setup_logging(log_level)


@app.command()
def generate_merkle_root(
    input: str = typer.Option(..., "--input", "-i", help="JSON balance map"),
    out: str = typer.Option(None, help="Write the artifact here instead of stdout"),
):
    """Build the Merkle root and per-account proofs for a balance map."""
    try:
        info = parse_balance_map(_load_json(input))
    except InvalidBalanceMap as e:
        print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=1)
    data = json.dumps(info.to_json_dict(), indent=2)
    if out:
        pathlib.Path(out).write_text(data)
        print(f"[green]Wrote {len(info.claims)} claims to {out}[/green]")
        print(f"[cyan]merkleRoot[/cyan]: {info.merkle_root}")
        print(f"[cyan]tokenTotal[/cyan]: {info.token_total}")
    else:
        typer.echo(data)


@app.command()
def verify_merkle_root(
    input: str = typer.Option(..., "--input", "-i", help="Distribution artifact JSON"),
):
    """Re-check every proof and recompute the root from the published claims."""
    report = verify_distribution(_load_info(input))
    print(f"[cyan]valid proofs[/cyan]: {report.valid}")
    for account in report.invalid:
        print(f"[red]invalid proof for {account}[/red]")
    if report.root_matches:
        print(f"[green]Reconstructed merkle root {report.computed_root} matches[/green]")
    else:
        print(
            f"[red]Reconstructed root {report.computed_root} does not match {report.expected_root}[/red]"
        )
    if not report.ok:
        raise typer.Exit(code=1)


@app.command()
def proof(
    address: str = typer.Option(..., help="Claimant address"),
    input: str = typer.Option("./merkle.json", "--input", "-i"),
):
    """Print the claim entry for an address."""
    info = _load_info(input)
    try:
        account = normalize_address(address)
    except ValueError:
        raise typer.BadParameter("invalid address")
    claim = info.claims.get(account)
    if claim is None:
        print("[red]Address not found in claims[/red]")
        raise typer.Exit(code=1)
    typer.echo(json.dumps({"account": account, **claim.model_dump(exclude_none=True)}, indent=2))


@app.command()
def claim(
    url: str = typer.Option(..., help="Base URL of the distributor service"),
    address: str = typer.Option(..., help="Claimant address"),
    input: str = typer.Option("./merkle.json", "--input", "-i"),
):
    """Submit an address's claim from the artifact to a running service."""
    info = _load_info(input)
    try:
        account = normalize_address(address)
    except ValueError:
        raise typer.BadParameter("invalid address")
    entry = info.claims.get(account)
    if entry is None:
        print("[red]Address not found in claims[/red]")
        raise typer.Exit(code=1)
    payload = {
        "index": entry.index,
        "account": account,
        "amount": entry.amount,
        "proof": entry.proof,
    }
    resp = requests.post(url.rstrip("/") + "/claim", json=payload, timeout=30)
    print(f"[cyan]Status[/cyan]: {resp.status_code}")
    try:
        print(resp.json())
    except ValueError:
        print(resp.text)
    if resp.status_code != 200:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
