"""Tests for the per-cycle sampler."""

import pytest

from schedwatch.registry import Registry
from schedwatch.reporter import Reporter
from schedwatch.sampler import SampleResult, Sampler
from schedwatch.schedstat import ProcSource, SchedstatUnavailable


@pytest.fixture
def lines() -> list[str]:
    return []


@pytest.fixture
def make_sampler(fake_proc, fixed_clock, lines):
    """Build a Sampler writing into `lines`."""

    def factory(verbose: bool = False) -> Sampler:
        reporter = Reporter(verbose=verbose, echo=lines.append)
        return Sampler(ProcSource(fake_proc.root), reporter, clock=fixed_clock)

    return factory


class TestSampleTargets:
    """Tests for Sampler.sample_targets()."""

    def test_consecutive_reads_report_difference(self, fake_proc, make_sampler, lines):
        fake_proc.add_process(100, run_time=5000, wait_time=100, command="a")
        registry = Registry.initialize([100], ProcSource(fake_proc.root))
        sampler = make_sampler()

        assert sampler.sample_targets(registry) == 1
        fake_proc.set_counters(100, 7000, 450)
        assert sampler.sample_targets(registry) == 1

        assert lines == [
            "10:41:07 100 (a) run=5000ns wait=100ns",
            "10:41:07 100 (a) run=2000ns wait=350ns",
        ]

    def test_exited_target_marked_dead_and_not_counted(self, fake_proc, make_sampler, lines):
        fake_proc.add_process(100, run_time=10, wait_time=1)
        fake_proc.add_process(200, run_time=20, wait_time=2)
        registry = Registry.initialize([100, 200], ProcSource(fake_proc.root))
        sampler = make_sampler()
        sampler.sample_targets(registry)
        lines.clear()

        fake_proc.remove_process(200)
        assert sampler.sample_targets(registry) == 1

        target = registry.targets[1]
        assert target.alive is False
        assert lines[-1] == "pid 200 has exited"

    def test_dead_target_never_reported_again(self, fake_proc, make_sampler, lines):
        fake_proc.add_process(100, run_time=10, wait_time=1)
        registry = Registry.initialize([100], ProcSource(fake_proc.root))
        sampler = make_sampler()
        sampler.sample_targets(registry)

        fake_proc.remove_process(100)
        assert sampler.sample_targets(registry) == 0
        # Same pid comes back: still dead for the rest of the run
        fake_proc.add_process(100, run_time=99, wait_time=9)
        assert sampler.sample_targets(registry) == 0

        assert lines.count("pid 100 has exited") == 1
        assert len(lines) == 2

    def test_targets_sampled_in_registry_order(self, fake_proc, make_sampler, lines):
        for pid in (300, 100, 200):
            fake_proc.add_process(pid, run_time=pid, wait_time=0, command=f"p{pid}")
        registry = Registry.initialize([300, 100, 200], ProcSource(fake_proc.root))

        make_sampler().sample_targets(registry)

        assert [line.split()[1] for line in lines] == ["300", "100", "200"]

    def test_dead_at_start_skipped(self, fake_proc, make_sampler, lines):
        registry = Registry.initialize([555], ProcSource(fake_proc.root))

        assert make_sampler().sample_targets(registry) == 0
        assert lines == []

    def test_malformed_record_treated_as_gone(self, fake_proc, make_sampler, lines):
        fake_proc.add_process(100)
        (fake_proc.root / "100" / "schedstat").write_text("garbage\n")
        registry = Registry.initialize([100], ProcSource(fake_proc.root))

        assert make_sampler().sample_targets(registry) == 0
        assert registry.targets[0].alive is False
        assert lines == ["pid 100 has exited"]

    def test_verbose_reports_absolute_counters(self, fake_proc, make_sampler, lines):
        fake_proc.add_process(100, run_time=5000, wait_time=100, timeslices=2, command="a")
        registry = Registry.initialize([100], ProcSource(fake_proc.root))
        sampler = make_sampler(verbose=True)

        sampler.sample_targets(registry)
        fake_proc.set_counters(100, 7000, 100, 3)
        sampler.sample_targets(registry)

        assert lines == [
            "10:41:07 100 (a) run=5000ns wait=100ns slices=2",
            "10:41:07 100 (a) run=7000ns wait=100ns slices=3",
        ]


class TestSampleSystem:
    """Tests for Sampler.sample_system()."""

    def test_no_system_target(self, fake_proc, make_sampler, lines):
        registry = Registry.initialize([], ProcSource(fake_proc.root))

        assert make_sampler().sample_system(registry) is None
        assert lines == []

    def test_reports_aggregate(self, fake_proc, make_sampler, lines):
        fake_proc.write_system()
        registry = Registry.initialize([], ProcSource(fake_proc.root), whole_system=True)

        result = make_sampler().sample_system(registry)

        assert isinstance(result, SampleResult)
        assert result.delta_run_time == 4000
        assert result.delta_wait_time == 600
        assert lines == ["10:41:07 system run=4000ns wait=600ns"]

    def test_aggregate_delta(self, fake_proc, make_sampler, lines):
        fake_proc.write_system("cpu0 0 0 0 0 0 0 100 10 1\n")
        registry = Registry.initialize([], ProcSource(fake_proc.root), whole_system=True)
        sampler = make_sampler()

        sampler.sample_system(registry)
        fake_proc.write_system("cpu0 0 0 0 0 0 0 250 15 2\n")
        result = sampler.sample_system(registry)

        assert result.delta_run_time == 150
        assert result.delta_wait_time == 5

    def test_unavailable_source_raises(self, fake_proc, make_sampler):
        registry = Registry.initialize([], ProcSource(fake_proc.root), whole_system=True)

        with pytest.raises(SchedstatUnavailable):
            make_sampler().sample_system(registry)

    def test_unknown_version_still_sampled(self, fake_proc, make_sampler, lines):
        fake_proc.write_system("version 99\ncpu0 0 0 0 0 0 0 10 20 1\n")
        registry = Registry.initialize([], ProcSource(fake_proc.root), whole_system=True)

        result = make_sampler().sample_system(registry)

        assert result.run_time_total == 10
        assert lines == ["10:41:07 system run=10ns wait=20ns"]
