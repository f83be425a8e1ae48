from datetime import date
from decimal import Decimal

import pytest

from gymdesk.client import ApiError, ClientValidationError, SubscriptionWizard
from gymdesk.client.http import ApiResponse

MONTHLY = {"id": 11, "durationDays": 30, "price": 1000}
WEEKLY_TRAINING = {"id": 21, "durationDays": 7, "price": 500}


class FakeClient:
    def __init__(self, active=None, failing_kind=None):
        self.created = []
        self.lookups = []
        self.active = active or {}
        self.failing_kind = failing_kind

    async def member_active_subscription(self, kind, member_id):
        self.lookups.append((kind, member_id))
        return ApiResponse(data=self.active.get(member_id))

    async def create_subscription(self, kind, member_id, plan_variant_id, **fields):
        if kind == self.failing_kind:
            raise ApiError(400, "Trainer is inactive", "validation_error")
        self.created.append((kind, member_id, plan_variant_id, fields))
        return ApiResponse(
            data={"id": len(self.created), "kind": kind},
            warnings=[f"{kind} warning"],
        )


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def wizard(client):
    return SubscriptionWizard(client, today=date(2024, 1, 1))


def _fill_membership(wizard):
    wizard.select_member(5)
    wizard.select_plan_type(1)
    wizard.select_variant(MONTHLY)


def test_steps_grow_with_training(wizard):
    assert wizard.steps == ["member", "plan", "details", "payment"]
    wizard.toggle_training(True)
    assert wizard.steps == ["member", "plan", "details", "training", "payment"]


def test_cannot_advance_without_selection(wizard):
    assert wizard.current_step == "member"
    assert not wizard.next()
    wizard.select_member(5)
    assert wizard.next()
    assert wizard.current_step == "plan"

    wizard.select_plan_type(1)
    assert not wizard.can_proceed()
    wizard.select_variant(MONTHLY)
    assert wizard.next()
    assert wizard.current_step == "details"
    assert wizard.next()
    assert wizard.current_step == "payment"
    assert wizard.can_proceed()
    assert not wizard.next()

    assert wizard.back()
    assert wizard.current_step == "details"


def test_changing_plan_type_clears_variant(wizard):
    _fill_membership(wizard)
    wizard.select_plan_type(2)
    assert wizard.form.plan_variant is None
    assert wizard.final_price is None


def test_training_wizard_needs_trainer_on_details(client):
    wizard = SubscriptionWizard(client, kind="training", today=date(2024, 1, 1))
    wizard.select_member(5)
    wizard.next()
    wizard.select_plan_type(2)
    wizard.select_variant(WEEKLY_TRAINING)
    wizard.next()
    assert wizard.current_step == "details"
    assert not wizard.can_proceed()
    wizard.form.trainer_id = 3
    assert wizard.next()

    with pytest.raises(ClientValidationError):
        wizard.toggle_training(True)


def test_disabling_training_steps_back_and_clears(wizard):
    _fill_membership(wizard)
    wizard.toggle_training(True)
    wizard.next()
    wizard.next()
    wizard.next()
    assert wizard.current_step == "training"

    wizard.select_training_plan_type(2)
    wizard.select_training_variant(WEEKLY_TRAINING)
    wizard.form.training_trainer_id = 3
    wizard.form.training_discount_amount = Decimal("50")
    assert wizard.next()
    assert wizard.current_step == "payment"
    assert wizard.step_index == 4

    wizard.toggle_training(False)
    assert wizard.current_step == "payment"
    assert wizard.step_index == 3
    assert wizard.form.training_plan_variant is None
    assert wizard.form.training_trainer_id is None
    assert wizard.form.training_discount_amount == Decimal("0")


def test_disabling_training_while_on_training_step(wizard):
    _fill_membership(wizard)
    wizard.toggle_training(True)
    wizard.next()
    wizard.next()
    wizard.next()
    wizard.toggle_training(False)
    assert wizard.current_step == "details"


def test_preview_price_and_end_date(wizard):
    _fill_membership(wizard)
    wizard.form.discount_amount = Decimal("200")
    assert wizard.final_price == Decimal("800.00")
    assert wizard.end_date == date(2024, 1, 31)

    wizard.form.discount_amount = Decimal("1500")
    assert wizard.final_price == Decimal("0.00")

    wizard.toggle_training(True)
    wizard.select_training_variant(WEEKLY_TRAINING)
    wizard.form.training_discount_amount = Decimal("100")
    assert wizard.training_final_price == Decimal("400.00")


def test_validate_reports_each_missing_field(client):
    wizard = SubscriptionWizard(client, kind="training", today=date(2024, 1, 1))
    wizard.form.start_date = None
    wizard.form.discount_amount = Decimal("-1")
    wizard.set_payment(None, None)

    with pytest.raises(ClientValidationError) as exc_info:
        wizard.validate()
    assert set(exc_info.value.errors) == {
        "memberId",
        "planTypeId",
        "planVariantId",
        "startDate",
        "discountAmount",
        "trainerId",
        "paymentAmount",
    }


async def test_submit_creates_membership_with_payment(wizard, client):
    _fill_membership(wizard)
    wizard.form.discount_amount = Decimal("200")
    wizard.set_payment(800, "cash", reference="R-1")

    result = await wizard.submit()

    assert len(client.created) == 1
    kind, member_id, variant_id, fields = client.created[0]
    assert (kind, member_id, variant_id) == ("membership", 5, 11)
    assert fields["start_date"] == date(2024, 1, 1)
    assert fields["discount_amount"] == Decimal("200")
    assert fields["payment_amount"] == Decimal("800.00")
    assert fields["payment_method"] == "cash"
    assert "trainer_id" not in fields
    assert result.training is None
    assert result.warnings == ["membership warning"]


async def test_submit_adds_training_after_membership(wizard, client):
    _fill_membership(wizard)
    wizard.toggle_training(True)
    wizard.select_training_plan_type(2)
    wizard.select_training_variant(WEEKLY_TRAINING)
    wizard.form.training_trainer_id = 3
    wizard.form.training_notes = "Mornings"

    result = await wizard.submit()

    assert [c[0] for c in client.created] == ["membership", "training"]
    _, member_id, variant_id, fields = client.created[1]
    assert (member_id, variant_id) == (5, 21)
    assert fields["trainer_id"] == 3
    assert fields["start_date"] == date(2024, 1, 1)
    assert fields["notes"] == "Mornings"
    assert result.training.data == {"id": 2, "kind": "training"}
    assert result.warnings == ["membership warning", "training warning"]


async def test_submit_refuses_invalid_form(wizard, client):
    with pytest.raises(ClientValidationError):
        await wizard.submit()
    assert client.created == []


async def test_existing_active_membership_warns_without_blocking():
    client = FakeClient(active={5: {"id": 9, "planName": "Gym Access", "variantName": "1 Month", "endDate": "2024-01-20"}})
    wizard = SubscriptionWizard(client, today=date(2024, 1, 1))
    wizard.select_member(5)

    warning = await wizard.check_existing_active()

    assert client.lookups == [("membership", 5)]
    assert warning == "This member already has an active membership: Gym Access - 1 Month, ends 2024-01-20"
    assert wizard.existing_active["id"] == 9
    assert wizard.can_proceed()

    wizard.select_member(6)
    assert wizard.existing_active is None
    assert await wizard.check_existing_active() is None


async def test_existing_check_needs_a_member(wizard, client):
    assert await wizard.check_existing_active() is None
    assert client.lookups == []


async def test_failed_training_keeps_created_membership():
    client = FakeClient(failing_kind="training")
    wizard = SubscriptionWizard(client, today=date(2024, 1, 1))
    _fill_membership(wizard)
    wizard.toggle_training(True)
    wizard.select_training_plan_type(2)
    wizard.select_training_variant(WEEKLY_TRAINING)
    wizard.form.training_trainer_id = 3

    result = await wizard.submit()

    assert [c[0] for c in client.created] == ["membership"]
    assert result.subscription.data == {"id": 1, "kind": "membership"}
    assert result.training is None
    assert result.training_error.message == "Trainer is inactive"
    assert result.warnings[-1] == "Membership created, but the training could not be added: Trainer is inactive"
