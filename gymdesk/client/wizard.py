"""
Step-by-step subscription creation.

The wizard only gathers inputs and previews the price and end date; the
server recomputes both when the subscription is created.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from gymdesk.client.api import GymDeskClient, validate_payment_input
from gymdesk.client.errors import ClientError, ClientValidationError
from gymdesk.client.http import ApiResponse
from gymdesk.core.conversions import to_money
from gymdesk.core.logging_config import get_logger
from gymdesk.services.pricing import calculate_end_date

BASE_STEPS = ("member", "plan", "details", "payment")
TRAINING_STEP = "training"

logger = get_logger("client.wizard")


@dataclass
class WizardForm:
    member_id: Optional[int] = None
    plan_type_id: Optional[int] = None
    plan_variant: Optional[Dict[str, Any]] = None
    start_date: Optional[date] = None
    discount_amount: Decimal = Decimal("0")
    auto_renew: bool = False
    notes: Optional[str] = None
    # training subscriptions need a trainer on the details step
    trainer_id: Optional[int] = None

    collect_payment: bool = False
    payment_amount: Optional[Decimal] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_notes: Optional[str] = None

    add_training: bool = False
    training_plan_type_id: Optional[int] = None
    training_plan_variant: Optional[Dict[str, Any]] = None
    training_trainer_id: Optional[int] = None
    training_discount_amount: Decimal = Decimal("0")
    training_notes: Optional[str] = None


@dataclass
class WizardResult:
    subscription: ApiResponse
    training: Optional[ApiResponse] = None
    warnings: List[str] = field(default_factory=list)
    # set when the membership was created but the linked training was not
    training_error: Optional[ClientError] = None


def _preview_price(variant: Optional[Dict[str, Any]], discount: Any) -> Optional[Decimal]:
    if not variant:
        return None
    return max(Decimal("0.00"), to_money(variant.get("price")) - to_money(discount))


class SubscriptionWizard:
    def __init__(self, client: GymDeskClient, kind: str = "membership", today: Optional[date] = None):
        if kind not in ("membership", "training"):
            raise ClientValidationError({"kind": f"Unknown subscription kind '{kind}'"})
        self.client = client
        self.kind = kind
        self.form = WizardForm(start_date=today or date.today())
        self.step_index = 0
        self.existing_active: Optional[Dict[str, Any]] = None

    @property
    def steps(self) -> List[str]:
        if self.kind == "membership" and self.form.add_training:
            return [*BASE_STEPS[:3], TRAINING_STEP, BASE_STEPS[3]]
        return list(BASE_STEPS)

    @property
    def current_step(self) -> str:
        return self.steps[self.step_index]

    # -- selections -----------------------------------------------------------

    def select_member(self, member_id: int) -> None:
        if member_id != self.form.member_id:
            self.existing_active = None
        self.form.member_id = member_id

    async def check_existing_active(self) -> Optional[str]:
        """
        Look up the selected member's current subscription of this kind.

        Returns a warning when one exists. The wizard can still proceed.
        """
        self.existing_active = None
        if self.form.member_id is None:
            return None
        response = await self.client.member_active_subscription(self.kind, self.form.member_id)
        self.existing_active = response.data or None
        return self.existing_warning

    @property
    def existing_warning(self) -> Optional[str]:
        active = self.existing_active
        if not active:
            return None
        warning = f"This member already has an active {self.kind}"
        if active.get("planName"):
            warning += f": {active['planName']} - {active.get('variantName')}, ends {active.get('endDate')}"
        return warning

    def select_plan_type(self, plan_type_id: int) -> None:
        self.form.plan_type_id = plan_type_id
        self.form.plan_variant = None

    def select_variant(self, variant: Dict[str, Any]) -> None:
        self.form.plan_variant = variant

    def select_training_plan_type(self, plan_type_id: int) -> None:
        self.form.training_plan_type_id = plan_type_id
        self.form.training_plan_variant = None

    def select_training_variant(self, variant: Dict[str, Any]) -> None:
        self.form.training_plan_variant = variant

    def set_payment(self, amount: Any, method: Optional[str], reference: Optional[str] = None, notes: Optional[str] = None) -> None:
        self.form.collect_payment = True
        self.form.payment_amount = to_money(amount) if amount is not None else None
        self.form.payment_method = method
        self.form.payment_reference = reference
        self.form.payment_notes = notes

    def toggle_training(self, enabled: bool) -> None:
        if self.kind != "membership":
            raise ClientValidationError({"addTraining": "Only membership wizards can add a training"})
        on_training = self.current_step == TRAINING_STEP
        on_last_payment = self.current_step == "payment" and self.step_index == 4
        self.form.add_training = enabled
        if enabled:
            return
        if on_training or on_last_payment:
            self.step_index -= 1
        self.form.training_plan_type_id = None
        self.form.training_plan_variant = None
        self.form.training_trainer_id = None
        self.form.training_discount_amount = Decimal("0")
        self.form.training_notes = None

    # -- navigation -----------------------------------------------------------

    def can_proceed(self) -> bool:
        form = self.form
        step = self.current_step
        if step == "member":
            return form.member_id is not None
        if step == "plan":
            return form.plan_type_id is not None and form.plan_variant is not None
        if step == "details":
            if self.kind == "training":
                return form.start_date is not None and form.trainer_id is not None
            return form.start_date is not None
        if step == TRAINING_STEP:
            return (
                form.training_plan_type_id is not None
                and form.training_plan_variant is not None
                and form.training_trainer_id is not None
            )
        return step == "payment"

    def next(self) -> bool:
        if self.step_index < len(self.steps) - 1 and self.can_proceed():
            self.step_index += 1
            return True
        return False

    def back(self) -> bool:
        if self.step_index > 0:
            self.step_index -= 1
            return True
        return False

    # -- preview --------------------------------------------------------------

    @property
    def final_price(self) -> Optional[Decimal]:
        return _preview_price(self.form.plan_variant, self.form.discount_amount)

    @property
    def end_date(self) -> Optional[date]:
        if not self.form.plan_variant or not self.form.start_date:
            return None
        return calculate_end_date(self.form.start_date, int(self.form.plan_variant["durationDays"]))

    @property
    def training_final_price(self) -> Optional[Decimal]:
        return _preview_price(self.form.training_plan_variant, self.form.training_discount_amount)

    # -- submit ---------------------------------------------------------------

    def validate(self) -> None:
        form = self.form
        errors = {}
        if form.member_id is None:
            errors["memberId"] = "Please select a member"
        if form.plan_type_id is None:
            errors["planTypeId"] = "Please select a plan type"
        if form.plan_variant is None:
            errors["planVariantId"] = "Please select a plan variant"
        if form.start_date is None:
            errors["startDate"] = "Start date is required"
        if form.discount_amount is not None and to_money(form.discount_amount) < 0:
            errors["discountAmount"] = "Discount cannot be negative"
        if self.kind == "training" and form.trainer_id is None:
            errors["trainerId"] = "Please select a trainer"
        if form.collect_payment:
            try:
                validate_payment_input(form.payment_amount, form.payment_method)
            except ClientValidationError:
                errors["paymentAmount"] = "Payment amount and method are required when collecting payment"
        if form.add_training and (
            form.training_plan_type_id is None
            or form.training_plan_variant is None
            or form.training_trainer_id is None
        ):
            errors["trainerId"] = "Training plan, variant, and trainer are required"
        if errors:
            raise ClientValidationError(errors)

    async def submit(self) -> WizardResult:
        self.validate()
        form = self.form
        fields = {
            "start_date": form.start_date,
            "discount_amount": form.discount_amount or Decimal("0"),
            "auto_renew": form.auto_renew,
            "notes": form.notes,
        }
        if self.kind == "training":
            fields["trainer_id"] = form.trainer_id
        if form.collect_payment:
            fields.update(
                payment_amount=form.payment_amount,
                payment_method=form.payment_method,
                payment_reference=form.payment_reference,
                payment_notes=form.payment_notes,
            )

        created = await self.client.create_subscription(
            self.kind, form.member_id, form.plan_variant["id"], **fields
        )
        result = WizardResult(subscription=created, warnings=list(created.warnings))

        if self.kind == "membership" and form.add_training:
            try:
                result.training = await self.client.create_subscription(
                    "training",
                    form.member_id,
                    form.training_plan_variant["id"],
                    trainer_id=form.training_trainer_id,
                    start_date=form.start_date,
                    discount_amount=form.training_discount_amount or Decimal("0"),
                    notes=form.training_notes,
                )
            except ClientError as exc:
                # the membership exists; resubmitting would create a second one
                logger.warning(f"Membership created but linked training failed: {exc}")
                result.training_error = exc
                result.warnings.append(f"Membership created, but the training could not be added: {exc}")
            else:
                result.warnings.extend(result.training.warnings)
        return result
