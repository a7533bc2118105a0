"""Tests for the simulation driver: settings, policy comparison, manual
sequences, exports and the command line entry point.
"""
import csv
import json

import pytest
from memhier.core.errors import ConfigurationError
from memhier.core.replacement_policies import ReplacementPolicy
from memhier.core.workload import AccessType
from memhier.data.stats_export import Exporter, export_chart_json, hit_rate_history
from memhier.simulation import Simulation, SimulationSettings, parse_manual_sequence
from memhier.simulation.simulation import LevelSettings


def small_settings(**overrides):
    values = dict(
        levels=[LevelSettings("L1", 1, 64, 2, 4), LevelSettings("L2", 8, 64, 4, 12)],
        access_count=600,
        seed=13,
    )
    values.update(overrides)
    return SimulationSettings(**values)


def test_default_settings_build_three_levels():
    configs = SimulationSettings().build_configs()
    assert [c.name for c in configs] == ["L1", "L2", "L3"]
    assert configs[0].total_size == 32 * 1024
    assert [c.number_of_sets for c in configs] == [64, 512, 8192]


def test_disabled_levels_are_skipped():
    settings = SimulationSettings()
    settings.levels[1].enabled = False
    assert [c.name for c in settings.build_configs()] == ["L1", "L3"]


def test_no_enabled_level_is_rejected():
    settings = SimulationSettings()
    for lvl in settings.levels:
        lvl.enabled = False
    with pytest.raises(ConfigurationError):
        settings.build_configs()
    with pytest.raises(ConfigurationError):
        Simulation(settings).run_simulation()


def test_settings_from_json(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({
        "levels": [{"name": "L1", "size_kib": 4, "block_size": 32, "associativity": 4, "latency": 3}],
        "policy": "LFU",
        "ram_latency": 80,
        "seed": 5,
    }))
    settings = SimulationSettings.load(str(path))
    assert settings.policy == "LFU"
    assert settings.levels[0].to_config().number_of_sets == 32
    assert SimulationSettings.from_dict(settings.to_dict()) == settings


@pytest.mark.parametrize('data', [
    {"colour": "blue"},
    {"levels": [{"name": "L1", "size_kib": 4}]},
    {"levels": [{"name": "L1", "size_kib": 4, "block_size": 32, "associativity": 4, "latency": 3, "ways": 2}]},
    {"levels": [1]},
    {"levels": {"name": "L1"}},
    {"levels": [{"name": "L1", "size_kib": "4", "block_size": 32, "associativity": 4, "latency": 3}]},
    {"levels": [{"name": "L1", "size_kib": 4, "block_size": 32, "associativity": 4, "latency": 3, "enabled": "yes"}]},
    {"write_ratio": "0.2"},
    {"access_count": 10.5},
    {"ram_latency": None},
    {"seed": True},
    {"policy": 3},
])
def test_bad_settings(data):
    with pytest.raises(ConfigurationError):
        SimulationSettings.from_dict(data)


def test_invalid_json_file(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with pytest.raises(ConfigurationError):
        SimulationSettings.load(str(path))


def test_run_simulation_uses_settings():
    sim = Simulation(small_settings(pattern="Loop", policy="MRU"))
    results = sim.run_simulation()
    assert len(results) == 600
    assert sim.simulator.policy is ReplacementPolicy.MRU
    stats = sim.simulator.statistics()
    assert stats.total_accesses == 600
    # a 60-word loop fits in L1 after the first pass
    assert stats.cache_level_stats[0].hits > 500


def test_parse_manual_sequence():
    seq = parse_manual_sequence("0x10, 20, 3f, 0x40-ff, ,8-1")
    assert [a.address for a in seq] == [0x10, 20, 0x3f, 0x40, 8]
    assert [a.type for a in seq] == [AccessType.READ] * 3 + [AccessType.WRITE] * 2
    assert [a.timestamp for a in seq] == list(range(5))
    with pytest.raises(ConfigurationError):
        parse_manual_sequence("0x10, zz")


def test_run_sequence():
    sim = Simulation(small_settings())
    results = sim.run_sequence("0, 0, 0x40-1, 0x40")
    assert [r.is_hit for r in results] == [False, True, False, True]
    assert [r.hit_level for r in results] == [0, 1, 0, 1]
    stats = sim.simulator.statistics()
    assert (stats.read_accesses, stats.write_accesses) == (3, 1)


def test_compare_policies():
    sim = Simulation(small_settings())
    comparison = sim.compare_policies(pattern="Locality", count=800, write_ratio=0.1)
    assert list(comparison.hit_rates) == [p.value for p in ReplacementPolicy]
    assert all(0.0 <= rate <= 100.0 for rate in comparison.hit_rates.values())
    assert comparison.best_hit_rate == max(comparison.hit_rates.values())
    assert comparison.hit_rates[comparison.best] == comparison.best_hit_rate


def test_compare_subset_is_deterministic():
    run = lambda: Simulation(small_settings()).compare_policies("Mixed", 500, policies=["LRU", "fifo"])
    first = run()
    assert list(first.hit_rates) == ["LRU", "FIFO"]
    assert first == run()


def test_exports(tmp_path):
    sim = Simulation(small_settings())
    results = sim.run_simulation()
    stats = sim.simulator.statistics()

    csv_path = tmp_path / "stats.csv"
    Exporter.export_stats_csv(str(csv_path), stats)
    with open(csv_path, newline='') as f:
        header, row = list(csv.reader(f))
    values = dict(zip(header, row))
    assert int(values['total_accesses']) == 600
    assert int(values['L1_hits']) == stats.cache_level_stats[0].hits
    assert 'L2_misses' in values

    history = hit_rate_history(results, sample_every=100)
    assert len(history) == 6
    assert history[-1] == pytest.approx(stats.hit_rate / 100)

    json_path = tmp_path / "stats.json"
    export_chart_json(history, stats, str(json_path))
    data = json.loads(json_path.read_text())
    assert data['hit_rate_history'] == history
    assert data['stats']['total_accesses'] == 600
    assert data['stats']['cache_level_stats'][0]['name'] == "L1"


def test_hit_rate_history_samples_last_result():
    sim = Simulation(small_settings())
    results = sim.run_sequence("0, 0, 0, 4")
    assert hit_rate_history(results, sample_every=3) == [pytest.approx(2 / 3), 0.5]
    assert hit_rate_history([], sample_every=3) == []


def test_command_line(tmp_path, capsys):
    import run

    config_path = tmp_path / "small.json"
    config_path.write_text(json.dumps({
        "levels": [{"name": "L1", "size_kib": 1, "block_size": 64, "associativity": 2, "latency": 4}],
    }))
    csv_path = tmp_path / "cmp.csv"
    assert run.main(["--config", str(config_path), "--compare", "--pattern", "loop",
                     "--count", "300", "--seed", "1", "--csv", str(csv_path)]) == 0
    out = capsys.readouterr().out
    assert "Best:" in out
    with open(csv_path, newline='') as f:
        rows = list(csv.reader(f))
    assert rows[0] == ['policy', 'hit_rate', 'best']
    assert len(rows) == 1 + len(ReplacementPolicy)

    assert run.main(["--sequence", "0x0, 0x0, 0x10-1"]) == 0
    out = capsys.readouterr().out
    assert "Total accesses: 3" in out
    assert "0x00000000" in out

    assert run.main(["--policy", "nope", "--count", "10"]) == 2
    assert "configuration error" in capsys.readouterr().err


def test_command_line_rejects_wrongly_typed_settings(tmp_path, capsys):
    # Input: a settings file whose write_ratio is a string.
    # Expected: the configuration error path (exit 2), not a traceback.
    import run

    config_path = tmp_path / "typed.json"
    config_path.write_text(json.dumps({"write_ratio": "0.2"}))
    assert run.main(["--config", str(config_path), "--count", "10"]) == 2
    assert "configuration error" in capsys.readouterr().err

    config_path.write_text(json.dumps({"levels": [1]}))
    assert run.main(["--config", str(config_path)]) == 2
    assert "configuration error" in capsys.readouterr().err
