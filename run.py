"""Entry point for the memory hierarchy simulator.

Usage:
    python run.py                           # default settings, LRU, sequential
    python run.py --policy lfru --pattern mixed --count 5000 --seed 7
    python run.py --compare --pattern locality
    python run.py --sequence "0x0, 0x40, 0x0-ff"
    python run.py --config settings.json --csv stats.csv --json stats.json
"""
import argparse
import logging
import sys

from memhier.core.errors import ConfigurationError, SimulationError
from memhier.data.stats_export import Exporter, export_chart_json, hit_rate_history
from memhier.simulation import Simulation, SimulationSettings


def build_parser():
    parser = argparse.ArgumentParser(description='Memory hierarchy cache simulator')
    parser.add_argument('--config', help='JSON settings file')
    parser.add_argument('--policy', help='replacement policy (LRU, FIFO, Random, LFU, MRU, RoundRobin, SecondChance, LFRU)')
    parser.add_argument('--pattern', help='access pattern (Sequential, Random, Locality, Stride, Loop, Mixed)')
    parser.add_argument('--count', type=int, help='number of generated accesses')
    parser.add_argument('--write-ratio', type=float, help='probability that an access is a write')
    parser.add_argument('--seed', type=int, help='seed for workload and simulator randomness')
    parser.add_argument('--sequence', help='comma separated addresses; "addr-data" marks a write')
    parser.add_argument('--compare', action='store_true', help='compare all replacement policies')
    parser.add_argument('--csv', help='write statistics (or comparison) as CSV')
    parser.add_argument('--json', help='write statistics and hit-rate history as JSON')
    parser.add_argument('-v', '--verbose', action='store_true', help='debug logging')
    return parser


def load_settings(args) -> SimulationSettings:
    settings = SimulationSettings.load(args.config) if args.config else SimulationSettings()
    if args.policy:
        settings.policy = args.policy
    if args.pattern:
        settings.pattern = args.pattern
    if args.count is not None:
        settings.access_count = args.count
    if args.write_ratio is not None:
        settings.write_ratio = args.write_ratio
    if args.seed is not None:
        settings.seed = args.seed
    return settings


def compare(sim: Simulation, args):
    comparison = sim.compare_policies()
    print(f"Pattern: {sim.settings.pattern} | accesses: {sim.settings.access_count}")
    for name, rate in comparison.hit_rates.items():
        print(f"{name:>13}: Hit Rate = {rate:.2f}%")
    print(f"Best: {comparison.best} ({comparison.best_hit_rate:.2f}%)")
    if args.csv:
        Exporter.export_comparison_csv(args.csv, comparison.hit_rates, comparison.best)


def run(sim: Simulation, args):
    def report(percent):
        logging.debug("progress: %d%%", percent)

    if args.sequence:
        results = sim.run_sequence(args.sequence, progress=report)
        for r in results:
            print(f"{r.address_hex} {r.access_type.value:<5} {r.hit_miss_text:<4} "
                  f"{r.hit_level or '-':>2} {r.total_latency:>6} cycles  {r.details}")
        print()
    else:
        results = sim.run_simulation(progress=report)
    stats = sim.simulator.statistics()
    print(sim.simulator.summary_text(), end='')
    if args.csv:
        Exporter.export_stats_csv(args.csv, stats)
    if args.json:
        export_chart_json(hit_rate_history(results), stats, args.json)


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s: %(message)s')
    try:
        sim = Simulation(load_settings(args))
        if args.compare:
            compare(sim, args)
        else:
            run(sim, args)
    except ConfigurationError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return 2
    except SimulationError as exc:
        print(f"simulation failed: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"I/O error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
