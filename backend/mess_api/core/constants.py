"""
Domain vocabulary shared by models, schemas and services.
"""

ROLE_STUDENT = "student"
ROLE_STAFF = "staff"
ROLE_ADMIN = "admin"
ROLES = (ROLE_STUDENT, ROLE_STAFF, ROLE_ADMIN)

MEAL_TYPES = ("breakfast", "lunch", "snacks", "dinner")

DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# Booking lifecycle: upcoming -> cancelled | checked_in. Nothing returns to upcoming.
STATUS_UPCOMING = "upcoming"
STATUS_CHECKED_IN = "checked_in"
STATUS_CANCELLED = "cancelled"
BOOKING_STATUSES = (STATUS_UPCOMING, STATUS_CHECKED_IN, STATUS_CANCELLED)

WASTE_RATING_MIN = 1
WASTE_RATING_MAX = 5

POINTS_PER_LEVEL = 100

MEAL_SERVING_TIMES = {
    "breakfast": "7:00 - 10:00 AM",
    "lunch": "12:00 - 3:00 PM",
    "snacks": "4:00 - 6:00 PM",
    "dinner": "7:00 - 10:00 PM",
}
