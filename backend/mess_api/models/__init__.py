from mess_api.models.user import User
from mess_api.models.menu import WeeklyMenu, MealOption
from mess_api.models.vote import Vote
from mess_api.models.booking import Booking

__all__ = ["User", "WeeklyMenu", "MealOption", "Vote", "Booking"]
