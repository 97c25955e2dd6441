#!/usr/bin/env python3
"""
HOLC Equity Analysis Pipeline with Click CLI

Loads the three inputs named in config.yaml, runs the analysis and writes the
per-grade tables, bar charts and a markdown report. Configuration values can
be overridden from the command line without editing config.yaml.

Usage:
    holc-maps                                  # Run the full pipeline
    holc-maps run --output-dir out/            # Write outputs elsewhere
    holc-maps run --dry-run                    # Show what would run
    holc-maps check-crs                        # Only report CRS consistency

    # Override config values:
    holc-maps --config-override analysis.year=2021 run
    holc-maps --config my_config.yaml --verbose run
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

import click
import geopandas as gpd
from loguru import logger

from ..analysis.pipeline import AnalysisResult, run_analysis
from ..analysis.presentation import plot_grade_bars, write_markdown_report
from ..processing.data_utils import load_geo_file
from ..processing.errors import HolcMapsError
from ..processing.validation import check_crs_consistency
from .config_loader import Config

DATASETS = ("ejscreen", "holc", "birds")


class ConfigOverride(click.ParamType):
    """Custom parameter type for config overrides."""

    name = "config_override"

    def convert(self, value, param, ctx) -> Tuple[str, Any]:
        if "=" not in value:
            self.fail(f"Invalid format: {value}. Use KEY=VALUE", param, ctx)

        key, val = value.split("=", 1)

        # Auto-parse value type
        if val.lower() in ("true", "false"):
            parsed_val: Any = val.lower() == "true"
        elif val.lower() in ("null", "none"):
            parsed_val = None
        elif val.lstrip("-").isdigit():
            parsed_val = int(val)
        elif "." in val and val.replace(".", "", 1).lstrip("-").isdigit():
            parsed_val = float(val)
        elif "," in val:
            parsed_val = [item.strip() for item in val.split(",") if item.strip()]
        else:
            parsed_val = val

        return key, parsed_val


DETAILED_LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
)
BRIEF_LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"


def log_level_for(verbose: bool = False, enable_trace: bool = False) -> str:
    if enable_trace:
        return "TRACE"
    return "DEBUG" if verbose else "INFO"


def setup_logging(verbose: bool = False, enable_trace: bool = False) -> None:
    """
    Replace loguru's default sink with one stderr sink at the requested level.

    INFO by default, DEBUG with --verbose, TRACE with --trace. The level is
    exported as LOGURU_LEVEL so handle_critical_error knows whether to dump
    the full traceback.
    """
    log_level = log_level_for(verbose, enable_trace)
    detailed = verbose or enable_trace

    logger.remove()
    logger.add(
        sys.stderr,
        format=DETAILED_LOG_FORMAT if detailed else BRIEF_LOG_FORMAT,
        level=log_level,
        colorize=True,
        backtrace=enable_trace,
        diagnose=enable_trace,
    )
    os.environ["LOGURU_LEVEL"] = log_level
    logger.debug(f"🔧 Logging at {log_level}")


def handle_critical_error(error: Exception, context: str = "") -> None:
    """
    Log an unrecoverable error, naming the dataset when known.

    Args:
        error: The exception that occurred
        context: Additional context about where the error occurred
    """
    enable_trace = os.environ.get("LOGURU_LEVEL", "INFO") == "TRACE"

    if enable_trace:
        logger.opt(exception=error).trace(f"💥 TRACE MODE: full context for {context}")

    logger.critical(f"💥 CRITICAL ERROR: {context}")
    logger.critical(f"Exception: {type(error).__name__}: {error}")
    dataset = getattr(error, "dataset", None)
    if dataset:
        logger.critical(f"Dataset: {dataset}")

    if not enable_trace:
        logger.info("💡 For detailed debugging, run with --trace flag")


def load_inputs(config: Config) -> Dict[str, gpd.GeoDataFrame]:
    """Load the three configured input datasets."""
    return {
        name: load_geo_file(config.get_input_path(name), name, layer=config.get_input_layer(name))
        for name in DATASETS
    }


def write_outputs(result: AnalysisResult, config: Config, output_dir: Path) -> List[Path]:
    """Write summary CSVs, charts and the markdown report."""
    written: List[Path] = []

    ejscreen_csv = output_dir / "ejscreen_by_grade.csv"
    birds_csv = output_dir / "birds_by_grade.csv"
    result.ejscreen_summary.to_csv(ejscreen_csv, index=False)
    result.birds_summary.to_csv(birds_csv, index=False)
    written += [ejscreen_csv, birds_csv]
    logger.success(f"  ✅ Saved tables: {ejscreen_csv.name}, {birds_csv.name}")

    charts = [
        plot_grade_bars(
            result.ejscreen_summary,
            "percent",
            "Share of block group records by HOLC grade",
            output_dir / "ejscreen_percent_by_grade.png",
            ylabel="% of block group records",
        )
    ]
    for indicator in result.indicators:
        charts.append(
            plot_grade_bars(
                result.ejscreen_summary,
                f"mean_{indicator}",
                f"Mean {indicator} by HOLC grade",
                output_dir / f"mean_{indicator}_by_grade.png",
                ylabel=f"Mean {indicator}",
            )
        )
    charts.append(
        plot_grade_bars(
            result.birds_summary,
            "percent",
            f"Bird observations by HOLC grade ({config.get_analysis_setting('year')})",
            output_dir / "birds_percent_by_grade.png",
            ylabel="% of bird observations",
        )
    )
    written += charts

    report = write_markdown_report(
        result,
        output_dir / "holc_equity_report.md",
        project_name=config.get("project_name"),
        charts=charts,
    )
    written.append(report)
    return written


@click.group(invoke_without_command=True)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to config.yaml (defaults to HOLC_MAPS_CONFIG_PATH, ./config.yaml, then the packaged config)",
)
@click.option(
    "--config-override",
    "config_overrides",
    multiple=True,
    type=ConfigOverride(),
    help="Set config values using dot notation (e.g., analysis.year=2021)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable DEBUG level logging")
@click.option(
    "--trace", is_flag=True, help="Enable TRACE level logging for deep debugging (maximum detail)"
)
@click.option("--log-file", type=str, help="Also log to specified file")
@click.pass_context
def cli(ctx, config_file, config_overrides, verbose, trace, log_file):
    """
    HOLC Equity Analysis Pipeline

    Joins HOLC grade zones with EJScreen block groups and bird observations
    and summarizes both by grade.
    """
    setup_logging(verbose=verbose, enable_trace=trace)

    if log_file:
        log_level = log_level_for(verbose, trace)
        logger.add(
            log_file,
            level=log_level,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}",
            rotation="10 MB",
            retention="7 days",
        )
        logger.info(f"📄 Also logging to file: {log_file}")

    logger.info("🗺️ HOLC Equity Analysis Pipeline")

    try:
        config = Config(config_file)
    except (FileNotFoundError, ValueError) as e:
        logger.critical(f"Configuration error: {e}")
        logger.info("💡 Pass --config or set HOLC_MAPS_CONFIG_PATH")
        ctx.exit(1)

    for key, value in config_overrides:
        logger.debug(f"🔧 Override: {key} = {value!r}")
        config.set(key, value)

    ctx.obj = config

    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@cli.command()
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False),
    help="Directory for tables, charts and the report (overrides directories.output)",
)
@click.option("--dry-run", is_flag=True, help="Show what would be run without executing")
@click.pass_context
def run(ctx, output_dir=None, dry_run=False):
    """Run the full analysis and write its outputs."""
    config: Config = ctx.obj
    config.print_config_summary()

    if output_dir:
        config.set("directories.output", str(Path(output_dir).resolve()))

    if dry_run:
        logger.info("🔍 DRY RUN - nothing will be executed")
        present = config.validate_input_files()
        for name in DATASETS:
            try:
                status = "✅" if present.get(name) else "❌"
                logger.info(f"  {status} {name}: {config.get_input_path(name)}")
            except ValueError as e:
                logger.warning(f"  ⚠️ {e}")
        logger.info(f"  📁 Output directory: {config.get_output_dir(create=False)}")
        return

    try:
        inputs = load_inputs(config)
        result = run_analysis(inputs["ejscreen"], inputs["holc"], inputs["birds"], config)
        written = write_outputs(result, config, config.get_output_dir())
    except HolcMapsError as e:
        handle_critical_error(e, "analysis aborted")
        ctx.exit(1)
    except (FileNotFoundError, KeyError, ValueError) as e:
        handle_critical_error(e, "invalid input or configuration")
        ctx.exit(1)

    logger.success(f"🎉 Pipeline complete: {len(written)} files written")


@cli.command("check-crs")
@click.pass_context
def check_crs(ctx):
    """Load the inputs and report whether their CRS agree."""
    config: Config = ctx.obj

    try:
        inputs = load_inputs(config)
    except (FileNotFoundError, ValueError) as e:
        handle_critical_error(e, "could not load inputs")
        ctx.exit(1)

    check = check_crs_consistency(inputs)
    for line in check.describe():
        click.echo(line)

    if not check.all_match:
        ctx.exit(1)


if __name__ == "__main__":
    cli()
