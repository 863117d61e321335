from enum import Enum


class ErrorCode(str, Enum):
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    ORGANIZATION_NOT_FOUND = "ORGANIZATION_NOT_FOUND"
    COUPON_NOT_FOUND = "COUPON_NOT_FOUND"
    NOTIFICATION_NOT_FOUND = "NOTIFICATION_NOT_FOUND"
    FEEDBACK_NOT_FOUND = "FEEDBACK_NOT_FOUND"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"

    REGISTRATION_DEADLINE_PASSED = "REGISTRATION_DEADLINE_PASSED"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    EVENT_FULL = "EVENT_FULL"
    SESSION_FULL = "SESSION_FULL"
    SESSION_EVENT_MISMATCH = "SESSION_EVENT_MISMATCH"
    NOT_REGISTERED = "NOT_REGISTERED"

    ALREADY_CHECKED_IN = "ALREADY_CHECKED_IN"
    COUPON_ALREADY_REDEEMED = "COUPON_ALREADY_REDEEMED"
    CAPACITY_BELOW_REGISTERED = "CAPACITY_BELOW_REGISTERED"
    ALREADY_MEMBER = "ALREADY_MEMBER"
    COUPON_ID_CONFLICT = "COUPON_ID_CONFLICT"

    NOT_ORGANIZATION_ADMIN = "NOT_ORGANIZATION_ADMIN"

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_TIME_WINDOW = "INVALID_TIME_WINDOW"
    INVALID_DEADLINE = "INVALID_DEADLINE"

    CONSISTENCY_FAULT = "CONSISTENCY_FAULT"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    RATE_LIMITED = "RATE_LIMITED"
    HTTP_ERROR = "HTTP_ERROR"
