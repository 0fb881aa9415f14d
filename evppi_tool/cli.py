"""Command-line interface for the EVPPI tool.

Runs the health-impact Monte Carlo simulation, estimates single-parameter
EVPPI for every scenario and exports the matrices and EVPPI table.
"""

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from .analysis import run_analysis
from .core.data_models import SimulationConfig, default_model_config
from .core.exceptions import EVPPIToolError, handle_exception
from .core.logging_config import get_logger, setup_logging
from .core.smoothers import SMOOTHERS, get_smoother
from .io.config_loader import load_model_config, save_model_config
from .io.exporters import SUPPORTED_FORMATS, export_results

app: typer.Typer = typer.Typer(help="Single-parameter EVPPI for health-impact scenario models")
console: Console = Console()
logger = get_logger(__name__)


@app.command()
def run(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Model configuration file (JSON or YAML)"),
    samples: Optional[int] = typer.Option(None, "--samples", "-n", help="Number of Monte Carlo samples"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed for reproducibility"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Worker threads"),
    smoother: str = typer.Option("spline", "--smoother", help=f"Regression smoother ({', '.join(SMOOTHERS)})"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output directory for exports"),
    formats: Optional[List[str]] = typer.Option(None, "--formats", help="Export formats (csv,json)"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Write a JSON-lines run log to this file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output")
):
    """Run the Monte Carlo simulation and estimate EVPPI."""
    if verbose:
        setup_logging("DEBUG", log_file)
    else:
        setup_logging("INFO" if log_file else "WARNING", log_file)

    try:
        model_config = load_model_config(config) if config else default_model_config()

        overrides = {}
        if samples is not None:
            overrides['n_samples'] = samples
        if seed is not None:
            overrides['random_seed'] = seed
        if workers is not None:
            overrides['n_workers'] = workers
        simulation = SimulationConfig(**{**model_config.simulation.model_dump(), **overrides})

        console.print(
            f"[yellow]Running {simulation.n_samples:,} samples over "
            f"{len(model_config.parameters)} parameters and {len(model_config.scenarios)} scenarios...[/yellow]"
        )
        with console.status("[bold green]Sampling and estimating EVPPI..."):
            results, evppi = run_analysis(model_config, simulation, get_smoother(smoother))

        _display_evppi(evppi)

        if output:
            export_formats = _split_formats(formats) if formats else list(SUPPORTED_FORMATS)
            written = export_results(results, evppi, output, export_formats,
                                     extra_metadata={'smoother': smoother})
            console.print(f"[blue]Wrote {len(written)} file(s) to {Path(output).absolute()}[/blue]")

    except (EVPPIToolError, ValueError) as e:
        error = handle_exception(e, logger, context={"command": "run"}, reraise=False)
        console.print(f"[red]Error: {error.message}[/red]")
        raise typer.Exit(1)


@app.command()
def validate(
    config: str = typer.Argument(..., help="Model configuration file (JSON or YAML)")
):
    """Validate a model configuration file."""
    try:
        model_config = load_model_config(config)
    except EVPPIToolError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        for suggestion in e.recovery_suggestions:
            console.print(f"  - {suggestion}")
        raise typer.Exit(1)

    console.print(
        f"[green]Configuration valid: {len(model_config.parameters)} parameters, "
        f"{len(model_config.scenarios)} scenarios[/green]"
    )


@app.command()
def template(
    output: str = typer.Argument(..., help="Destination file (.json, .yaml or .yml)")
):
    """Write the default model configuration as a starting point."""
    try:
        path = save_model_config(default_model_config(), output)
    except EVPPIToolError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Template written to {path}[/green]")


def _split_formats(formats: List[str]) -> List[str]:
    return [f for value in formats for f in value.split(",") if f.strip()]


def _display_evppi(evppi) -> None:
    """Display the EVPPI table."""
    table = Table(title=f"EVPPI (% of outcome variance, n={evppi.n_samples:,})")
    table.add_column("Parameter")
    for scenario in evppi.scenarios:
        table.add_column(scenario, justify="right")

    for parameter in evppi.parameters:
        cells = []
        for scenario in evppi.scenarios:
            if (parameter, scenario) in evppi.failures:
                cells.append("[red]failed[/red]")
            else:
                cells.append(f"{evppi.get(parameter, scenario):.2f}")
        table.add_row(parameter, *cells)

    console.print(table)

    for scenario, reason in evppi.degenerate_scenarios.items():
        console.print(f"[orange3]{scenario}: not estimated ({reason})[/orange3]")
    for (parameter, scenario), message in evppi.failures.items():
        console.print(f"[orange3]{parameter} / {scenario}: {message}[/orange3]")


if __name__ == "__main__":
    app()
