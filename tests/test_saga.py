import pytest

from gasbora.services.saga import SagaStep, run_saga

from conftest import run


def _step(log, name, required=True, error=None):
    async def action():
        log.append(name)
        if error:
            raise error
    return SagaStep(name, action, required=required)


def test_steps_run_in_order():
    log = []
    report = run(run_saga([_step(log, "a"), _step(log, "b"), _step(log, "c", required=False)]))
    assert log == ["a", "b", "c"]
    assert report.completed == ["a", "b", "c"]
    assert report.clean


def test_best_effort_failure_does_not_stop_the_run():
    log = []
    report = run(run_saga([
        _step(log, "record"),
        _step(log, "img-1", required=False, error=OSError("gone")),
        _step(log, "img-2", required=False),
    ]))
    assert log == ["record", "img-1", "img-2"]
    assert report.completed == ["record", "img-2"]
    assert report.failed == {"img-1": "gone"}
    assert not report.clean


def test_required_failure_stops_and_raises():
    log = []
    with pytest.raises(RuntimeError):
        run(run_saga([
            _step(log, "record", error=RuntimeError("db down")),
            _step(log, "img-1", required=False),
        ]))
    assert log == ["record"]


def test_report_to_dict():
    report = run(run_saga([_step([], "x", required=False, error=ValueError())]))
    assert report.to_dict() == {"completed": [], "failed": {"x": "ValueError"}}
