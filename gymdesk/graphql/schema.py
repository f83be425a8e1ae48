import strawberry

from gymdesk.graphql.plans.mutations import PlansMutation
from gymdesk.graphql.plans.queries import PlansQuery
from gymdesk.graphql.subscriptions.mutations import SubscriptionsMutation
from gymdesk.graphql.subscriptions.queries import SubscriptionsQuery


@strawberry.type
class Query(PlansQuery, SubscriptionsQuery):
    @strawberry.field
    def hello(self) -> str:
        return "Hello from GymDesk!"


@strawberry.type
class Mutation(PlansMutation, SubscriptionsMutation):
    pass


schema = strawberry.Schema(query=Query, mutation=Mutation)
