HTTP_STATUS_CODES = {
    "OK": 200,
	"CREATED": 201,
	"ACCEPTED": 202,
	"BAD_REQUEST": 400,
	"UNAUTHORIZED": 401,
	"PAYMENT_REQUIRED": 402,
	"FORBIDDEN": 403,
	"NOT_FOUND": 404,
	"CONFLICT": 409,
	"VALIDATION_ERROR": 422,
	"INTERNAL_SERVER_ERROR": 500,
	"SERVICE_UNAVAILABLE": 503,
}

ERROR_MESSAGES = {
	"VALIDATION_FAILED": "Validation failed. Please check your inputs.",
	"UNAUTHORIZED_ACCESS": "You are not authorized to access this resource.",
	"SERVER_ERROR": "Internal server error",
	"RETRY_LATER": "The plan service is busy. Please retry the request.",
}

AUTHENTICATION_MESSAGES = {
	"AUTHENTICATION_REQUIRED": "Authentication Required",
	"TOKEN_EXPIRED": "Token expired",
	"INVALID_TOKEN": "Invalid token",
}

# Subscription (plan order) status
PLAN_STATUS = {
    "ACTIVE": "active",
    "PAUSED": "paused",
    "EXPIRED": "expired",
}

PAYMENT_STATUS = {
    "PENDING": "pending",
    "COMPLETED": "completed",
    "FAILED": "failed",
}

PLAN_TYPES = {
    "STANDARD": "standard",
    "PRO": "pro",
    "MINI": "mini",
}

# Data types reported to the delta-sync subsystem
SYNC_DATA_TYPES = {
    "PLAN_ORDERS": "plan_orders",
    "PLANS": "plans",
}

MS_IN_DAY = 24 * 60 * 60 * 1000
