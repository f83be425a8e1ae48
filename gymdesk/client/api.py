"""
Typed facade over the GymDesk REST API.

Reads go through the QueryCache; each successful mutation invalidates the
entities it touches.
"""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic.alias_generators import to_camel

from gymdesk.client.cache import QueryCache, make_key
from gymdesk.client.errors import ClientValidationError
from gymdesk.client.http import ApiResponse, AuthContext, HttpClient

SUBSCRIPTION_RESOURCES = {"membership": "memberships", "training": "trainings"}
PAYMENT_METHODS = ("cash", "card", "upi", "bank_transfer", "other")


def _jsonable(value: Any) -> Any:
    # money goes out as a decimal string
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def to_payload(fields: Dict[str, Any], keep_none: bool = False) -> Dict[str, Any]:
    """snake_case kwargs -> camelCase JSON body"""
    return {
        to_camel(k): _jsonable(v)
        for k, v in fields.items()
        if keep_none or v is not None
    }


def validate_payment_input(amount: Any, method: Optional[str]) -> None:
    errors = {}
    try:
        if amount is None or Decimal(str(amount)) <= 0:
            errors["amount"] = "Amount must be greater than zero"
    except ArithmeticError:
        errors["amount"] = "Amount must be a number"
    if not method:
        errors["method"] = "Payment method is required"
    elif method not in PAYMENT_METHODS:
        errors["method"] = f"Unknown payment method '{method}'"
    if errors:
        raise ClientValidationError(errors)


class GymDeskClient:
    def __init__(self, auth: AuthContext, cache: Optional[QueryCache] = None, **http_options):
        self.http = HttpClient(auth, **http_options)
        self.cache = cache or QueryCache()

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "GymDeskClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _read(self, entity: str, path: str, *parts: Any, **params: Any) -> ApiResponse:
        key = make_key(entity, path, *parts, **params)
        return await self.cache.fetch(key, lambda: self.http.get(path, params=params or None))

    async def _mutate(self, entity: str, method: str, path: str, json: Any = None) -> ApiResponse:
        response = await self.http.request(method, path, json=json)
        self.cache.invalidate_after(entity)
        return response

    # -- plans ----------------------------------------------------------------

    async def list_plan_types(self, category: Optional[str] = None) -> ApiResponse:
        return await self._read("plan", "/plans/types", category=category)

    async def list_all_plan_types(self, category: Optional[str] = None) -> ApiResponse:
        return await self._read("plan", "/plans/types/all", category=category)

    async def get_plan_type(self, plan_type_id: int) -> ApiResponse:
        return await self._read("plan", f"/plans/types/{plan_type_id}")

    async def create_plan_type(self, name: str, category: str, **fields) -> ApiResponse:
        return await self._mutate("plan", "POST", "/plans/types", to_payload({"name": name, "category": category, **fields}))

    async def update_plan_type(self, plan_type_id: int, **changes) -> ApiResponse:
        return await self._mutate("plan", "PATCH", f"/plans/types/{plan_type_id}", to_payload(changes, keep_none=True))

    async def deactivate_plan_type(self, plan_type_id: int) -> ApiResponse:
        return await self._mutate("plan", "PUT", f"/plans/types/{plan_type_id}/deactivate")

    async def delete_plan_type(self, plan_type_id: int) -> ApiResponse:
        return await self._mutate("plan", "DELETE", f"/plans/types/{plan_type_id}")

    async def list_plan_variants(self, plan_type_id: int, include_inactive: bool = True) -> ApiResponse:
        return await self._read(
            "plan", f"/plans/types/{plan_type_id}/variants",
            includeInactive=str(include_inactive).lower(),
        )

    async def get_plan_variant(self, variant_id: int) -> ApiResponse:
        return await self._read("plan", f"/plans/variants/{variant_id}")

    async def create_plan_variant(self, plan_type_id: int, duration_days: int, price: Any, **fields) -> ApiResponse:
        body = to_payload({"duration_days": duration_days, "price": price, **fields})
        return await self._mutate("plan", "POST", f"/plans/types/{plan_type_id}/variants", body)

    async def update_plan_variant(self, variant_id: int, **changes) -> ApiResponse:
        return await self._mutate("plan", "PATCH", f"/plans/variants/{variant_id}", to_payload(changes, keep_none=True))

    async def deactivate_plan_variant(self, variant_id: int) -> ApiResponse:
        return await self._mutate("plan", "PUT", f"/plans/variants/{variant_id}/deactivate")

    async def delete_plan_variant(self, variant_id: int) -> ApiResponse:
        return await self._mutate("plan", "DELETE", f"/plans/variants/{variant_id}")

    # -- memberships and trainings --------------------------------------------

    @staticmethod
    def _resource(kind: str) -> str:
        try:
            return "/" + SUBSCRIPTION_RESOURCES[kind]
        except KeyError:
            raise ClientValidationError({"kind": f"Unknown subscription kind '{kind}'"}) from None

    async def list_subscriptions(
        self,
        kind: str,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        member_id: Optional[int] = None,
    ) -> ApiResponse:
        return await self._read(
            kind, self._resource(kind), page=page, limit=limit, status=status, memberId=member_id
        )

    async def subscription_stats(self, kind: str) -> ApiResponse:
        return await self._read(kind, f"{self._resource(kind)}/stats")

    async def expiring_subscriptions(self, kind: str, days: Optional[int] = None) -> ApiResponse:
        return await self._read(kind, f"{self._resource(kind)}/expiring", days=days)

    async def member_subscriptions(self, kind: str, member_id: int) -> ApiResponse:
        return await self._read(kind, f"{self._resource(kind)}/member/{member_id}")

    async def member_active_subscription(self, kind: str, member_id: int) -> ApiResponse:
        return await self._read(kind, f"{self._resource(kind)}/member/{member_id}/active")

    async def get_subscription(self, kind: str, subscription_id: int) -> ApiResponse:
        return await self._read(kind, f"{self._resource(kind)}/{subscription_id}")

    async def get_dues(self, kind: str, subscription_id: int) -> ApiResponse:
        return await self._read(kind, f"{self._resource(kind)}/{subscription_id}/dues")

    async def create_subscription(self, kind: str, member_id: int, plan_variant_id: int, **fields) -> ApiResponse:
        """Only inputs are sent; the server derives end date and prices."""
        if fields.get("payment_amount") is not None or fields.get("payment_method"):
            validate_payment_input(fields.get("payment_amount"), fields.get("payment_method"))
        body = to_payload({"member_id": member_id, "plan_variant_id": plan_variant_id, **fields})
        return await self._mutate(kind, "POST", self._resource(kind), body)

    async def update_subscription(self, kind: str, subscription_id: int, **changes) -> ApiResponse:
        return await self._mutate(kind, "PATCH", f"{self._resource(kind)}/{subscription_id}", to_payload(changes, keep_none=True))

    async def freeze(self, kind: str, subscription_id: int) -> ApiResponse:
        return await self._mutate(kind, "PUT", f"{self._resource(kind)}/{subscription_id}/freeze")

    async def unfreeze(self, kind: str, subscription_id: int) -> ApiResponse:
        return await self._mutate(kind, "PUT", f"{self._resource(kind)}/{subscription_id}/unfreeze")

    async def cancel(self, kind: str, subscription_id: int) -> ApiResponse:
        return await self._mutate(kind, "PUT", f"{self._resource(kind)}/{subscription_id}/cancel")

    async def record_payment(
        self,
        kind: str,
        subscription_id: int,
        member_id: int,
        amount: Any,
        method: str,
        **fields,
    ) -> ApiResponse:
        validate_payment_input(amount, method)
        body = to_payload({
            f"{kind}_id": subscription_id,
            "member_id": member_id,
            "amount": amount,
            "method": method,
            **fields,
        })
        return await self._mutate("payment", "POST", f"{self._resource(kind)}/payments", body)

    # -- users and trainers ---------------------------------------------------

    async def sync_user(self) -> ApiResponse:
        return await self._mutate("member", "POST", "/users/sync")

    async def me(self) -> ApiResponse:
        return await self._read("member", "/users/me")

    async def list_users(self, role: Optional[str] = None, page: int = 1, limit: int = 10, search: Optional[str] = None) -> ApiResponse:
        return await self._read("member", "/users", role=role, page=page, limit=limit, search=search)

    async def get_user(self, user_id: int) -> ApiResponse:
        return await self._read("member", f"/users/{user_id}")

    async def create_user(self, first_name: str, **fields) -> ApiResponse:
        return await self._mutate("member", "POST", "/users", to_payload({"first_name": first_name, **fields}))

    async def update_user(self, user_id: int, **changes) -> ApiResponse:
        return await self._mutate("member", "PATCH", f"/users/{user_id}", to_payload(changes, keep_none=True))

    async def delete_user(self, user_id: int) -> ApiResponse:
        return await self._mutate("member", "DELETE", f"/users/{user_id}")

    async def list_trainers(self, include_inactive: bool = False) -> ApiResponse:
        return await self._read("trainer", "/trainers", includeInactive=str(include_inactive).lower())

    async def create_trainer(self, name: str) -> ApiResponse:
        return await self._mutate("trainer", "POST", "/trainers", {"name": name})

    async def deactivate_trainer(self, trainer_id: int) -> ApiResponse:
        return await self._mutate("trainer", "PUT", f"/trainers/{trainer_id}/deactivate")

    # -- reports and financials -----------------------------------------------

    async def dues_report(self, member_id: Optional[int] = None, page: int = 1, limit: int = 10) -> ApiResponse:
        return await self._read("dues_report", "/reports/dues", memberId=member_id, page=page, limit=limit)

    async def financial_summary(self, month: Optional[str] = None) -> ApiResponse:
        return await self._read("financials", "/financials/summary", month=month)

    async def roi(self) -> ApiResponse:
        return await self._read("financials", "/financials/roi")

    async def trends(self, months: Optional[int] = None) -> ApiResponse:
        return await self._read("financials", "/financials/trends", months=months)

    async def list_expenses(self, month: Optional[str] = None) -> ApiResponse:
        return await self._read("financials", "/financials/expenses", month=month)

    async def create_expense(self, amount: Any, category: str = "other", **fields) -> ApiResponse:
        body = to_payload({"amount": amount, "category": category, **fields})
        return await self._mutate("financials", "POST", "/financials/expenses", body)

    async def update_expense(self, expense_id: int, **changes) -> ApiResponse:
        return await self._mutate("financials", "PATCH", f"/financials/expenses/{expense_id}", to_payload(changes, keep_none=True))

    async def delete_expense(self, expense_id: int) -> ApiResponse:
        return await self._mutate("financials", "DELETE", f"/financials/expenses/{expense_id}")

    async def list_investments(self) -> ApiResponse:
        return await self._read("financials", "/financials/investments")

    async def create_investment(self, name: str, amount: Any, **fields) -> ApiResponse:
        body = to_payload({"name": name, "amount": amount, **fields})
        return await self._mutate("financials", "POST", "/financials/investments", body)

    async def update_investment(self, investment_id: int, **changes) -> ApiResponse:
        return await self._mutate("financials", "PATCH", f"/financials/investments/{investment_id}", to_payload(changes, keep_none=True))

    async def delete_investment(self, investment_id: int) -> ApiResponse:
        return await self._mutate("financials", "DELETE", f"/financials/investments/{investment_id}")
