"""Marketplace policy constants."""

# Orders
ORDER_STATUSES = ("pending", "accepted", "rejected", "shipped", "delivered", "cancelled", "paused")
ACTIVE_ORDER_STATUSES = ("pending", "accepted", "shipped")  # paused on suspension
PAUSED = "paused"
RESUME_FALLBACK_STATUS = "pending"

# Listings
LISTING_STATUSES = ("active", "inactive", "sold", "expired")
LISTING_CATEGORIES = ("vegetables", "fruits", "grains", "roots", "nuts", "dairy", "eggs")

# Users
USER_ROLES = ("buyer", "farmer", "admin")
USER_STATUSES = ("active", "inactive", "suspended")

# Nearby search
NEARBY_KINDS = {
    # kind -> roles allowed to search it
    "farmers": ("buyer", "admin"),
    "buyers": ("farmer", "admin"),
    "products": ("buyer", "admin"),
}
NEARBY_DEFAULT_LIMIT = {"farmers": 20, "buyers": 20, "products": 30}

# Verification
MAX_VERIFICATION_IMAGES = 3
RESPOND_MORE_IMAGES = 3
SUBMISSION_STATUSES = (
    "pending",
    "flagged",
    "approved",
    "rejected",
    "appeal",
    "awaiting_second_approval",
    "reinstated",
)
REVIEWABLE_STATUSES = ("pending", "flagged", "appeal", "awaiting_second_approval", "reinstated")
MORE_INFO_STATUSES = ("pending", "appeal", "awaiting_second_approval", "reinstated")
RESPOND_MORE_STATUSES = ("flagged", "appeal", "pending", "awaiting_second_approval")
APPEALABLE_STATUSES = ("rejected", "flagged")

# Reports
ACTIONABLE_REPORT_STATUSES = ("pending", "open")  # "open" is a legacy alias of pending
APPEAL_PRIORITY_DEFAULT = 2
