"""Tests for the alert lifecycle manager: create, refresh, auto-resolve, manual resolve."""

import pytest
from sqlalchemy.exc import IntegrityError

from coldwatch.models import Alert
from coldwatch.services.evaluator import SensorSnapshot, evaluate
from coldwatch.services.lifecycle import (
    AUTO_RESOLVE_NOTE,
    AlertLifecycleManager,
    AlertNotFoundError,
    AssignmentRef,
)
from coldwatch.services.thresholds import thresholds_for

FRIDGE = thresholds_for("refrigerator")


@pytest.fixture
async def sensor(pharmacies, assign) -> AssignmentRef:
    assignment = await assign("S1", pharmacies["PARLIN"], name="GPP Fridge 1")
    return AssignmentRef.from_model(assignment)


@pytest.fixture
def manager(repository, clock) -> AlertLifecycleManager:
    return AlertLifecycleManager(repository, clock)


def reading(temperature=5.0, humidity=55.0, battery_voltage=3.0):
    return evaluate(
        SensorSnapshot(
            present=True,
            temperature=temperature,
            humidity=humidity,
            battery_voltage=battery_voltage,
        ),
        FRIDGE,
    )


def offline():
    return evaluate(SensorSnapshot(present=False), FRIDGE, "GPP Fridge 1")


async def open_alerts(repository) -> list[Alert]:
    return await repository.list_alerts(resolved=False)


class TestCreateAndRefresh:
    @pytest.mark.asyncio
    async def test_violation_opens_alert(self, manager, repository, sensor, clock):
        """Test the first violation opens an alert."""
        outcome = await manager.reconcile(sensor, reading(temperature=9.5))

        assert outcome.created == 1
        [alert] = await open_alerts(repository)
        assert alert.type == "temperature_high"
        assert alert.severity == "medium"
        assert alert.current_value == 9.5
        assert alert.threshold_value == 8.0
        assert alert.location == "refrigerator"
        assert alert.pharmacy_id == sensor.pharmacy_id
        assert alert.created_at == clock.now()

    @pytest.mark.asyncio
    async def test_persistent_violation_refreshes_same_row(
        self, manager, repository, sensor, clock
    ):
        """Test a persisting violation updates the open alert."""
        await manager.reconcile(sensor, reading(temperature=9.5))
        clock.advance(minutes=5)
        outcome = await manager.reconcile(sensor, reading(temperature=15.0))

        assert outcome.created == 0
        assert outcome.updated == 1
        [alert] = await open_alerts(repository)
        assert alert.current_value == 15.0
        assert alert.message == "Temperature too high: 15.0°C (max: 8.0°C)"
        assert alert.updated_at == clock.now()
        # Severity stays as graded at creation
        assert alert.severity == "medium"

    @pytest.mark.asyncio
    async def test_repeated_passes_converge_to_one_open_alert(self, manager, repository, sensor):
        """Test repeated passes keep one open alert per type."""
        for _ in range(5):
            await manager.reconcile(sensor, reading(temperature=11.0, battery_voltage=2.0))

        alerts = await open_alerts(repository)
        assert sorted(a.type for a in alerts) == ["battery_low", "temperature_high"]

    @pytest.mark.asyncio
    async def test_duplicate_candidates_collapse(self, manager, repository, sensor):
        """Test two candidates of one type open a single alert."""
        evaluation = reading(temperature=9.5)
        evaluation.candidates.append(evaluation.candidates[0])

        outcome = await manager.reconcile(sensor, evaluation)

        assert outcome.created == 1
        assert len(await open_alerts(repository)) == 1

    @pytest.mark.asyncio
    async def test_missing_pharmacy_is_rejected(self, manager):
        """Test an assignment without a pharmacy is refused."""
        broken = AssignmentRef(
            assignment_id=99,
            sensor_id="S9",
            pharmacy_id=None,
            sensor_name="x",
            location_type="refrigerator",
        )
        with pytest.raises(ValueError):
            await manager.reconcile(broken, reading(temperature=9.5))


class TestAutoResolve:
    @pytest.mark.asyncio
    async def test_back_in_range_resolves(self, manager, repository, sensor, clock):
        """Test a checked metric back in range auto-resolves its alert."""
        await manager.reconcile(sensor, reading(temperature=9.5))
        clock.advance(minutes=5)
        outcome = await manager.reconcile(sensor, reading(temperature=5.0))

        assert outcome.resolved == 1
        assert await open_alerts(repository) == []
        [alert] = await repository.list_alerts(resolved=True)
        assert alert.resolved_at == clock.now()
        assert alert.resolved_note == AUTO_RESOLVE_NOTE
        assert alert.resolved_by is None

    @pytest.mark.asyncio
    async def test_offline_pass_leaves_reading_alerts_open(self, manager, repository, sensor):
        """Test an offline pass does not resolve reading alerts."""
        await manager.reconcile(sensor, reading(temperature=9.5))
        await manager.reconcile(sensor, offline())

        alerts = await open_alerts(repository)
        assert sorted(a.type for a in alerts) == ["offline", "temperature_high"]

    @pytest.mark.asyncio
    async def test_offline_resolves_when_sensor_reports_again(self, manager, repository, sensor):
        """Test the offline alert resolves once readings return."""
        await manager.reconcile(sensor, offline())
        outcome = await manager.reconcile(sensor, reading())

        assert outcome.resolved == 1
        assert await open_alerts(repository) == []

    @pytest.mark.asyncio
    async def test_unchecked_metric_is_left_alone(self, manager, repository, sensor):
        """Test an unchecked metric keeps its alert open."""
        await manager.reconcile(sensor, reading(humidity=90.0))
        await manager.reconcile(sensor, reading(humidity=None))

        [alert] = await open_alerts(repository)
        assert alert.type == "humidity"

    @pytest.mark.asyncio
    async def test_new_violation_after_resolution_creates_new_row(
        self, manager, repository, sensor
    ):
        """Test resolved alerts are history, not reopened."""
        await manager.reconcile(sensor, reading(temperature=9.5))
        await manager.reconcile(sensor, reading(temperature=5.0))
        await manager.reconcile(sensor, reading(temperature=9.5))

        everything = await repository.list_alerts()
        assert len(everything) == 2
        assert [a.resolved for a in everything] == [False, True]


class TestManualResolve:
    @pytest.mark.asyncio
    async def test_resolve_records_operator(self, manager, repository, sensor, clock):
        """Test manual resolution records operator and time."""
        await manager.reconcile(sensor, reading(temperature=9.5))
        [alert] = await open_alerts(repository)

        resolved = await manager.resolve(alert.id, "pharmacist-7", "Door was left open")

        assert resolved.resolved
        assert resolved.resolved_by == "pharmacist-7"
        assert resolved.resolved_note == "Door was left open"
        assert resolved.resolved_at == clock.now()

    @pytest.mark.asyncio
    async def test_resolve_is_idempotent(self, manager, repository, sensor, clock):
        """Test resolving twice keeps the first resolution."""
        await manager.reconcile(sensor, reading(temperature=9.5))
        [alert] = await open_alerts(repository)
        await manager.resolve(alert.id, "pharmacist-7")
        first_resolved_at = alert.resolved_at

        clock.advance(hours=1)
        again = await manager.resolve(alert.id, "someone-else")

        assert again.resolved_by == "pharmacist-7"
        assert again.resolved_at == first_resolved_at

    @pytest.mark.asyncio
    async def test_unknown_alert(self, manager):
        """Test resolving a missing alert raises."""
        with pytest.raises(AlertNotFoundError):
            await manager.resolve(12345, "pharmacist-7")


class TestOpenAlertIndex:
    @pytest.mark.asyncio
    async def test_store_rejects_second_open_alert(self, repository, sensor, clock):
        """Test the store refuses a second open alert per sensor and type."""
        for _ in range(2):
            repository.add_alert(
                Alert(
                    sensor_id="S1",
                    pharmacy_id=sensor.pharmacy_id,
                    type="offline",
                    severity="high",
                    message="Sensor offline",
                    resolved=False,
                    created_at=clock.now(),
                    updated_at=clock.now(),
                )
            )
        with pytest.raises(IntegrityError):
            await repository.commit()
