#!/usr/bin/env python3
"""
CLI interface for the M-PESA statement text parser.
"""
import json
import logging
import sys
import typer
from pathlib import Path
from typing import List, Optional
from pydantic import TypeAdapter
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .core.runner import parse_text
from .core.tabular import rows_to_transactions
from .core.summary import summarize
from .core.templates import DEFAULT_TEMPLATE_ID
from .models.schema import Transaction

app = typer.Typer(help="M-PESA Statement Text Parser")
console = Console()

TransactionList = TypeAdapter(List[Transaction])


def _read_input(source: str) -> str:
    """Read text from a file path, or stdin for '-'."""
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    if not path.exists():
        console.print(f"[red]Error: Input file not found: {path}[/red]")
        raise typer.Exit(1)
    return path.read_text(encoding="utf-8")


def _emit(transactions: List[Transaction], output: Optional[Path]):
    payload = TransactionList.dump_json(transactions, indent=2).decode("utf-8")
    if output:
        output.write_text(payload, encoding="utf-8")
        console.print(f"[green]✓ {len(transactions)} transactions written to: {output}[/green]")
    else:
        print(payload)


@app.command()
def parse(
    source: str = typer.Argument(..., help="Text file to parse, or '-' for stdin"),
    output: Optional[Path] = typer.Option(None, "--out", "-o", help="Output JSON file path"),
    template: str = typer.Option(DEFAULT_TEMPLATE_ID, "--template", "-t", help="Template ID to use"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output")
):
    """Parse M-PESA messages or statement text into JSON transactions."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)

    text = _read_input(source)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True
        ) as progress:
            progress.add_task("Parsing text...", total=None)
            transactions = parse_text(text, template)
    except Exception as e:
        console.print(f"[red]Error parsing text: {e}[/red]")
        if verbose:
            import traceback
            console.print(traceback.format_exc())
        raise typer.Exit(1)

    if not transactions:
        console.print("[red]No transactions found in this input.[/red]")
        raise typer.Exit(1)

    _emit(transactions, output)


@app.command()
def rows(
    json_path: Path = typer.Argument(..., help="JSON file holding a list of spreadsheet rows"),
    output: Optional[Path] = typer.Option(None, "--out", "-o", help="Output JSON file path"),
    template: str = typer.Option(DEFAULT_TEMPLATE_ID, "--template", "-t", help="Template ID to use")
):
    """Convert exported spreadsheet rows into JSON transactions."""
    try:
        data = json.loads(json_path.read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ValueError("Expected a JSON list of rows")
        transactions = rows_to_transactions(data, template)
    except Exception as e:
        console.print(f"[red]Error converting rows: {e}[/red]")
        raise typer.Exit(1)

    if not transactions:
        console.print("[red]No transactions found in this input.[/red]")
        raise typer.Exit(1)

    _emit(transactions, output)


@app.command()
def summary(
    source: str = typer.Argument(..., help="Text file to parse, or '-' for stdin"),
    template: str = typer.Option(DEFAULT_TEMPLATE_ID, "--template", "-t", help="Template ID to use")
):
    """Print income and expense totals by month."""
    text = _read_input(source)

    try:
        result = summarize(parse_text(text, template))
    except Exception as e:
        console.print(f"[red]Error parsing text: {e}[/red]")
        raise typer.Exit(1)

    if not result.transaction_count:
        console.print("[red]No transactions found in this input.[/red]")
        raise typer.Exit(1)

    table = Table(title=f"{result.transaction_count} transactions")
    table.add_column("Month")
    table.add_column("Income", justify="right")
    table.add_column("Expense", justify="right")
    table.add_column("Balance", justify="right")
    for month in result.monthly:
        table.add_row(month.month, f"{month.income:,.2f}", f"{month.expense:,.2f}", f"{month.balance:,.2f}")
    table.add_row("Total", f"{result.total_income:,.2f}", f"{result.total_expense:,.2f}",
                  f"{result.net_balance:,.2f}", style="bold")
    console.print(table)


@app.command()
def validate(
    json_path: Path = typer.Argument(..., help="Path to JSON file to validate")
):
    """Validate a JSON file against the transaction schema."""
    try:
        transactions = TransactionList.validate_json(json_path.read_text(encoding="utf-8"))
        console.print("[green]✓ JSON is valid[/green]")
        console.print(f"Transactions: {len(transactions)}")
    except Exception as e:
        console.print(f"[red]Validation failed: {e}[/red]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
