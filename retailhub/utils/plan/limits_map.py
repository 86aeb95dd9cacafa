# retailhub/utils/plan/limits_map.py
from collections import namedtuple

UsageRule = namedtuple("UsageRule", ["limit_field", "usage_field", "plan_field"])

# resource type -> where the plan order keeps its quota / counter, and
# which plan template field seeds the quota
USAGE_RULES = {
    "customers": UsageRule(
        limit_field="customer_limit",
        usage_field="customer_current_count",
        plan_field="max_customers",
    ),
    "products": UsageRule(
        limit_field="product_limit",
        usage_field="product_current_count",
        plan_field="max_products",
    ),
    "orders": UsageRule(
        limit_field="order_limit",
        usage_field="order_current_count",
        plan_field="max_orders",
    ),
}

USAGE_TYPES = tuple(USAGE_RULES.keys())
