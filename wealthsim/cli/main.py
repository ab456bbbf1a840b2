"""Command-line interface running WealthSim projections."""

from __future__ import annotations

import argparse
import json
from dataclasses import replace
from pathlib import Path

from wealthsim.engine.logging import configure_cli_logging, record_metrics
from wealthsim.engine.simulation import (
    DEFAULT_CONSTANTS,
    SimulationCalculationError,
    SimulationEngine,
    load_simulation_constants,
    write_simulation_artifacts,
)
from wealthsim.engine.validate import load_scenario, validate_scenario

DESCRIPTION = "WealthSim dual-path Monte Carlo projection engine"


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:  # pragma: no cover - argparse validation
        raise argparse.ArgumentTypeError("Expected an integer") from exc
    if number < 1:
        raise argparse.ArgumentTypeError("Expected a positive integer")
    return number


def _add_simulate_subparser(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> None:
    simulate = subparsers.add_parser(
        "simulate", help="Run the current and optimized Monte Carlo projections"
    )
    simulate.add_argument(
        "--scenario",
        type=Path,
        default=Path("configs") / "scenario.yml",
        help="Path to the scenario YAML",
    )
    simulate.add_argument("--seed", type=int, help="Override the scenario random seed")
    simulate.add_argument(
        "--iterations",
        type=_positive_int,
        help="Monte Carlo paths for the reported projections",
    )
    simulate.add_argument(
        "--optimization-iterations",
        type=_positive_int,
        help="Monte Carlo paths per optimizer probe",
    )
    simulate.add_argument("--currency", help="Override the scenario currency")
    simulate.add_argument("--user-id", help="Override the scenario user identifier")
    simulate.add_argument(
        "--constants",
        type=Path,
        help="Optional YAML with simulation constant overrides",
    )
    simulate.add_argument(
        "--output-dir",
        type=Path,
        help="Directory for CSV/JSON/PDF artefacts",
    )
    simulate.add_argument(
        "--verbose",
        action="store_true",
        help="Print the full simulation output as JSON",
    )


def _add_validate_subparser(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> None:
    """Attach the validate command used for scenario checks."""

    validate = subparsers.add_parser("validate", help="Validate a scenario YAML file")
    validate.add_argument(
        "--scenario",
        type=Path,
        default=Path("configs") / "scenario.yml",
        help="Path to the scenario YAML",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wealthsim", description=DESCRIPTION)
    parser.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Mirror logs to artifacts/audit/wealthsim.log in JSON format",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)
    _add_validate_subparser(sub)
    _add_simulate_subparser(sub)
    return parser


def _handle_simulate(args: argparse.Namespace) -> None:
    try:
        scenario = load_scenario(args.scenario)
    except ValueError as exc:
        raise SystemExit(f"[wealthsim] simulate error: {exc}") from exc

    constants = DEFAULT_CONSTANTS
    if args.constants is not None:
        constants = load_simulation_constants(args.constants)
    if args.iterations is not None:
        constants = replace(constants, iterations=int(args.iterations))
    if args.optimization_iterations is not None:
        constants = replace(constants, optimization_iterations=int(args.optimization_iterations))
    payload = scenario.input
    if args.seed is not None:
        payload = replace(payload, random_seed=int(args.seed))
    user_id = args.user_id or scenario.user_id
    currency = (args.currency or scenario.currency).upper()

    engine = SimulationEngine(constants=constants)
    try:
        output = engine.run_dual_path_simulation(user_id, payload, currency)
    except SimulationCalculationError as exc:
        raise SystemExit(f"[wealthsim] simulate error: {exc.reason}") from exc

    artifacts = write_simulation_artifacts(output, user_id=user_id, output_dir=args.output_dir)
    current = output.current_path
    optimized = output.optimized_path
    print(
        f"[wealthsim] simulate user={user_id} iterations={output.metadata.iterations} "
        f"current={current.probability:.2f} optimized={optimized.probability:.2f} "
        f"required_rate={optimized.required_savings_rate:.4f} "
        f"effective_rate={optimized.effective_savings_rate:.4f} "
        f"gain_20yr={output.wealth_difference['20yr']} {currency} "
        f"duration_ms={output.metadata.duration_ms} json={artifacts.output_json} "
        f"pdf={artifacts.report_pdf}"
    )
    if args.verbose:
        print(json.dumps(output.to_dict(), indent=2, sort_keys=True))
    tags = {"user_id": user_id, "currency": currency}
    record_metrics("simulation_current_probability", current.probability, tags)
    record_metrics("simulation_optimized_probability", optimized.probability, tags)
    record_metrics("simulation_duration_ms", float(output.metadata.duration_ms), tags)


def _handle_validate(args: argparse.Namespace) -> None:
    """Validate a scenario file and report diagnostics to stdout."""

    summary = validate_scenario(args.scenario)
    for warning in summary.warnings:
        print(f"[wealthsim] validate warning: {warning}")
    if summary.errors:
        for error in summary.errors:
            print(f"[wealthsim] validate error: {error}")
        raise SystemExit(1)
    print("[wealthsim] validate status=ok")


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_cli_logging(json_logs=bool(args.json_logs))
    if args.cmd == "simulate":
        _handle_simulate(args)
    elif args.cmd == "validate":
        _handle_validate(args)
    else:
        print(f"[wealthsim] command = {args.cmd}")


if __name__ == "__main__":
    main()
