# GymDesk models
from gymdesk.models.userModel import User, Trainer
from gymdesk.models.planModel import PlanType, PlanVariant
from gymdesk.models.subscriptionModel import Membership, Training
from gymdesk.models.paymentModel import Payment
from gymdesk.models.financeModel import Expense, Investment

__all__ = [
    "User", "Trainer",
    "PlanType", "PlanVariant",
    "Membership", "Training",
    "Payment",
    "Expense", "Investment",
]
