"""
Unit tests for studio/services/appointment_state.py - patch merge rule.

Tests coverage:
- initial_state(): income timestamps on creation
- merge_appointment_patch(): None means unchanged
- Write-once deposit_paid_at / completed_at
- schedule_changed(): normalized comparison
- validate_amounts()
- Strict duration parsing in the request schemas
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError as PydanticValidationError

from database.models import AppointmentStatus, PaymentStatus
from studio.errors import ValidationError
from studio.schemas import AppointmentCreate, AppointmentPatch
from studio.services.appointment_state import (
    AppointmentState,
    initial_state,
    merge_appointment_patch,
    schedule_changed,
    validate_amounts,
)

DAY_1 = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)
DAY_2 = DAY_1 + timedelta(days=1)
DAY_3 = DAY_1 + timedelta(days=2)


def make_state(**overrides) -> AppointmentState:
    data = {
        "client_id": uuid4(),
        "artist_id": uuid4(),
        "appointment_time": datetime(2025, 6, 10, 14, 0, tzinfo=UTC),
        "duration_minutes": 60,
        "total_price": 100000,
    }
    data.update(overrides)
    return AppointmentState(**data)


# ============================================================================
# initial_state()
# ============================================================================


class TestInitialState:
    def _payload(self, **overrides) -> AppointmentCreate:
        data = {
            "client_id": uuid4(),
            "artist_id": uuid4(),
            "appointment_time": "2025-06-10T14:00:00Z",
            "duration_minutes": 60,
            "total_price": 100000,
        }
        data.update(overrides)
        return AppointmentCreate(**data)

    def test_plain_booking_has_no_income_timestamps(self):
        state = initial_state(self._payload(), now=DAY_1)

        assert state.deposit_paid_at is None
        assert state.completed_at is None
        assert state.ends_at == datetime(2025, 6, 10, 15, 0, tzinfo=UTC)

    def test_ends_at_is_elapsed_across_dst(self):
        # 01:30 EST on the spring-forward day; the wall clock skips 02:00-03:00
        state = initial_state(
            self._payload(
                appointment_time=datetime(2025, 3, 9, 1, 30, tzinfo=ZoneInfo("America/New_York")),
                duration_minutes=120,
            ),
            now=DAY_1,
        )

        assert state.ends_at == datetime(2025, 3, 9, 8, 30, tzinfo=UTC)
        assert state.ends_at - state.appointment_time == timedelta(hours=2)
        assert state.column_values()["ends_at"] == state.ends_at

    def test_deposit_on_creation_sets_deposit_paid_at(self):
        state = initial_state(
            self._payload(amount_paid=30000, payment_status="deposit_paid"), now=DAY_1
        )

        assert state.deposit_paid_at == DAY_1

    def test_deposit_status_without_amount_sets_nothing(self):
        state = initial_state(self._payload(payment_status="deposit_paid"), now=DAY_1)

        assert state.deposit_paid_at is None

    def test_completed_on_creation_sets_completed_at(self):
        state = initial_state(self._payload(status="completed"), now=DAY_1)

        assert state.completed_at == DAY_1


# ============================================================================
# merge_appointment_patch()
# ============================================================================


class TestMergeAppointmentPatch:
    def test_omitted_fields_keep_current_values(self):
        current = make_state(description="Koi sleeve", amount_paid=10000)

        merged = merge_appointment_patch(current, AppointmentPatch(duration_minutes=90), now=DAY_1)

        assert merged.duration_minutes == 90
        assert merged.description == "Koi sleeve"
        assert merged.amount_paid == 10000
        assert merged.artist_id == current.artist_id

    def test_deposit_transition_sets_deposit_paid_at(self):
        current = make_state()

        merged = merge_appointment_patch(
            current,
            AppointmentPatch(payment_status=PaymentStatus.DEPOSIT_PAID, amount_paid=30000),
            now=DAY_1,
        )

        assert merged.deposit_paid_at == DAY_1

    def test_deposit_transition_without_positive_amount_sets_nothing(self):
        current = make_state()

        merged = merge_appointment_patch(
            current, AppointmentPatch(payment_status=PaymentStatus.DEPOSIT_PAID), now=DAY_1
        )

        assert merged.deposit_paid_at is None

    def test_deposit_paid_at_is_write_once(self):
        """Leaving deposit_paid and coming back never moves the timestamp."""
        state = merge_appointment_patch(
            make_state(),
            AppointmentPatch(payment_status=PaymentStatus.DEPOSIT_PAID, amount_paid=30000),
            now=DAY_1,
        )
        state = merge_appointment_patch(
            state, AppointmentPatch(payment_status=PaymentStatus.PENDING), now=DAY_2
        )
        state = merge_appointment_patch(
            state, AppointmentPatch(payment_status=PaymentStatus.DEPOSIT_PAID), now=DAY_3
        )

        assert state.deposit_paid_at == DAY_1

    def test_completed_at_set_on_transition(self):
        merged = merge_appointment_patch(
            make_state(), AppointmentPatch(status=AppointmentStatus.COMPLETED), now=DAY_2
        )

        assert merged.completed_at == DAY_2

    def test_completed_at_is_write_once(self):
        state = merge_appointment_patch(
            make_state(), AppointmentPatch(status=AppointmentStatus.COMPLETED), now=DAY_1
        )
        state = merge_appointment_patch(
            state, AppointmentPatch(status=AppointmentStatus.SCHEDULED), now=DAY_2
        )
        state = merge_appointment_patch(
            state, AppointmentPatch(status=AppointmentStatus.COMPLETED), now=DAY_3
        )

        assert state.completed_at == DAY_1

    def test_repeating_current_status_is_not_a_transition(self):
        current = make_state(status=AppointmentStatus.COMPLETED)

        merged = merge_appointment_patch(
            current, AppointmentPatch(status=AppointmentStatus.COMPLETED), now=DAY_1
        )

        assert merged.completed_at is None

    def test_empty_patch_is_rejected(self):
        with pytest.raises(ValueError):
            AppointmentPatch()


# ============================================================================
# schedule_changed()
# ============================================================================


class TestScheduleChanged:
    def test_same_instant_in_other_offset_is_unchanged(self):
        current = make_state()
        lima = ZoneInfo("America/Lima")
        merged = make_state(
            client_id=current.client_id,
            artist_id=current.artist_id,
            appointment_time=datetime(2025, 6, 10, 9, 0, tzinfo=lima),
        )

        assert schedule_changed(current, merged) is False

    def test_description_only_change_is_unchanged(self):
        current = make_state()
        merged = merge_appointment_patch(current, AppointmentPatch(description="touch-up"))

        assert schedule_changed(current, merged) is False

    def test_new_duration_is_a_change(self):
        current = make_state()
        merged = merge_appointment_patch(current, AppointmentPatch(duration_minutes=120))

        assert schedule_changed(current, merged) is True

    def test_new_artist_is_a_change(self):
        current = make_state()
        merged = merge_appointment_patch(current, AppointmentPatch(artist_id=uuid4()))

        assert schedule_changed(current, merged) is True


# ============================================================================
# validate_amounts()
# ============================================================================


class TestValidateAmounts:
    def test_amount_paid_above_total_rejected(self):
        with pytest.raises(ValidationError):
            validate_amounts(make_state(total_price=50000, amount_paid=60000))

    def test_no_total_price_accepts_any_paid_amount(self):
        validate_amounts(make_state(total_price=None, amount_paid=60000))

    def test_merged_patch_can_break_invariant(self):
        current = make_state(total_price=100000, amount_paid=30000)
        merged = merge_appointment_patch(current, AppointmentPatch(total_price=20000))

        with pytest.raises(ValidationError):
            validate_amounts(merged)


# ============================================================================
# Duration parsing
# ============================================================================


class TestDurationParsing:
    @pytest.mark.parametrize("duration", [True, False, "30", 30.0, 1.5])
    def test_create_rejects_non_integer_duration(self, duration):
        with pytest.raises(PydanticValidationError):
            AppointmentCreate(
                client_id=uuid4(),
                artist_id=uuid4(),
                appointment_time="2025-06-10T14:00:00Z",
                duration_minutes=duration,
            )

    def test_json_true_is_not_one_minute(self):
        body = (
            '{"client_id": "%s", "artist_id": "%s", '
            '"appointment_time": "2025-06-10T14:00:00Z", "duration_minutes": true}'
        ) % (uuid4(), uuid4())

        with pytest.raises(PydanticValidationError):
            AppointmentCreate.model_validate_json(body)

    @pytest.mark.parametrize("duration", [True, "45"])
    def test_patch_rejects_non_integer_duration(self, duration):
        with pytest.raises(PydanticValidationError):
            AppointmentPatch(duration_minutes=duration)

    def test_patch_accepts_whole_minutes(self):
        assert AppointmentPatch(duration_minutes=45).duration_minutes == 45
