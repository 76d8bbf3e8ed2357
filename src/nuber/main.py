import argparse
import json
import logging
from pathlib import Path

from nuber.simulation.config import SimulationConfig
from nuber.simulation.simulation import NuberSimulation, SimulationReport


def build_config(args: argparse.Namespace) -> SimulationConfig:
    config = SimulationConfig.from_json(args.config) if args.config else SimulationConfig()
    if args.drivers is not None:
        config.num_drivers = args.drivers
    if args.passengers is not None:
        config.num_passengers = args.passengers
    if args.seed is not None:
        config.random_seed = args.seed
    if args.shutdown_after is not None:
        config.shutdown_after = args.shutdown_after
    if args.log_events:
        config.log_events = True
    config.validate()
    return config


def run(config: SimulationConfig, visualize: bool = False, plot_path: Path = None) -> SimulationReport:
    sim = NuberSimulation(config)
    if not (visualize or plot_path):
        return sim.run()

    # Only pull in matplotlib when a plot is wanted
    from nuber.visualization.visualizer import DispatchVisualization

    vis = DispatchVisualization(sim)
    if visualize:
        report = vis.show()
    else:
        report = sim.run()
        vis.update(None)
        vis.plot_trip_durations(report)
    if plot_path:
        vis.save(str(plot_path))
    return report


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run a Nuber dispatch simulation")
    parser.add_argument("--config", type=Path, help="Path to a simulation config JSON file")
    parser.add_argument("--drivers", type=int, help="Number of drivers to register")
    parser.add_argument("--passengers", type=int, help="Number of passengers to book")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--shutdown-after", type=float, help="Shut dispatch down after this many seconds")
    parser.add_argument("--log-events", action="store_true", help="Print booking events to the console")
    parser.add_argument("--visualize", action="store_true", help="Show a live plot of the run")
    parser.add_argument("--plot", type=Path, help="Save the final plot to this path")
    parser.add_argument("--export-json", type=Path, help="Optional path to export the report as JSON")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s")

    config = build_config(args)
    report = run(config, visualize=args.visualize, plot_path=args.plot)

    summary = json.dumps(report.to_dict(), indent=2)
    print(summary)
    if args.export_json:
        args.export_json.write_text(summary, encoding="utf-8")
        print(f"Wrote report to {args.export_json}")
    return report


if __name__ == "__main__":
    main()
