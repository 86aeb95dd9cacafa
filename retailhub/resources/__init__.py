#Plan engine resources
from .plan_validity_resource import blp_plan_validity
