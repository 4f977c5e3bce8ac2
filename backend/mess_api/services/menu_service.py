"""
Weekly menu service: lazy creation, read model, and vote-counter reconciliation.

A week is identified by its Monday. Any date is accepted on input and
normalized, so "2024-06-05" and "2024-06-03" address the same menu.
"""

from datetime import date, timedelta
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mess_api.core.logging import get_logger
from mess_api.models.menu import MealOption, WeeklyMenu
from mess_api.models.vote import Vote
from mess_api.schemas.menu import (
    MealOptionResponse,
    ReconciledOption,
    WeeklyMenuResponse,
)

logger = get_logger(__name__)

# meal_type -> category -> [(option_key, name, description)]
DEFAULT_MENU_OPTIONS: dict[str, dict[str, list[tuple[str, str, str]]]] = {
    "breakfast": {
        "main": [
            ("poha", "Poha", "Flattened rice with vegetables"),
            ("upma", "Upma", "Semolina with spices"),
            ("paratha", "Aloo Paratha", "Stuffed flatbread with potato"),
        ],
        "bread": [
            ("toast", "Toast", "Crispy bread slices"),
            ("chapati", "Chapati", "Fresh wheat flatbread"),
        ],
        "side": [
            ("yogurt", "Yogurt", "Fresh curd"),
            ("pickle", "Pickle", "Spicy condiment"),
        ],
    },
    "lunch": {
        "main": [
            ("dal-rice", "Dal Rice", "Lentils with steamed rice"),
            ("rajma", "Rajma Chawal", "Kidney beans curry with rice"),
            ("chole", "Chole Bhature", "Chickpea curry with fried bread"),
        ],
        "vegetable": [
            ("mixed-veg", "Mixed Vegetables", "Seasonal vegetable curry"),
            ("palak-paneer", "Palak Paneer", "Spinach with cottage cheese"),
        ],
        "bread": [
            ("roti", "Roti", "Whole wheat flatbread"),
            ("naan", "Naan", "Leavened flatbread"),
        ],
    },
    "snacks": {
        "main": [
            ("samosa", "Samosa", "Crispy pastry with filling"),
            ("pakora", "Pakora", "Deep-fried fritters"),
            ("sandwich", "Grilled Sandwich", "Toasted sandwich with veggies"),
        ],
        "drink": [
            ("tea", "Tea", "Hot milk tea"),
            ("coffee", "Coffee", "Filter coffee"),
        ],
    },
    "dinner": {
        "main": [
            ("biryani", "Vegetable Biryani", "Aromatic rice with vegetables"),
            ("pulao", "Jeera Rice", "Cumin flavored rice"),
            ("dal-chawal", "Dal Chawal", "Simple lentils and rice"),
        ],
        "curry": [
            ("paneer-curry", "Paneer Curry", "Cottage cheese in rich gravy"),
            ("veg-curry", "Mix Veg Curry", "Assorted vegetables in curry"),
        ],
        "bread": [
            ("chapati-dinner", "Chapati", "Fresh wheat flatbread"),
            ("paratha-dinner", "Paratha", "Layered flatbread"),
        ],
    },
}


def week_start_for(day: Optional[date] = None) -> date:
    """Monday of the ISO week containing ``day`` (default: today)."""
    day = day or date.today()
    return day - timedelta(days=day.weekday())


def _build_default_options() -> list[MealOption]:
    options = []
    position = 0
    for meal_type, categories in DEFAULT_MENU_OPTIONS.items():
        for category, entries in categories.items():
            for option_key, name, description in entries:
                options.append(
                    MealOption(
                        meal_type=meal_type,
                        category=category,
                        option_key=option_key,
                        name=name,
                        description=description,
                        position=position,
                        votes=0,
                    )
                )
                position += 1
    return options


async def find_menu(db: AsyncSession, week_start: date) -> Optional[WeeklyMenu]:
    result = await db.execute(
        select(WeeklyMenu)
        .where(WeeklyMenu.week_start == week_start)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_or_create_menu(db: AsyncSession, week: Optional[date] = None) -> WeeklyMenu:
    """
    Return the menu for the week containing ``week``, seeding the default
    option set the first time the week is read.
    """
    week_start = week_start_for(week)
    menu = await find_menu(db, week_start)
    if menu:
        return menu

    menu = WeeklyMenu(week_start=week_start, options=_build_default_options())
    db.add(menu)
    try:
        await db.flush()
    except IntegrityError:
        # Another request seeded the same week first
        await db.rollback()
        logger.info("weekly_menu_seed_race", week_start=str(week_start))
        menu = await find_menu(db, week_start)
        if menu is None:
            raise
        return menu

    await db.refresh(menu, attribute_names=["options"])
    logger.info("weekly_menu_created", week_start=str(week_start), options=len(menu.options))
    return menu


def serialize_menu(menu: WeeklyMenu) -> WeeklyMenuResponse:
    grouped: dict[str, dict[str, list[MealOptionResponse]]] = {}
    for option in menu.options:
        grouped.setdefault(option.meal_type, {}).setdefault(option.category, []).append(
            MealOptionResponse(
                id=option.option_key,
                name=option.name,
                description=option.description,
                votes=option.votes,
            )
        )
    return WeeklyMenuResponse(id=menu.id, week_start=menu.week_start, options=grouped)


async def find_option(
    db: AsyncSession,
    week_start: date,
    meal_type: str,
    category: str,
    option_key: str,
) -> Optional[MealOption]:
    result = await db.execute(
        select(MealOption)
        .join(WeeklyMenu, MealOption.menu_id == WeeklyMenu.id)
        .where(
            WeeklyMenu.week_start == week_start,
            MealOption.meal_type == meal_type,
            MealOption.category == category,
            MealOption.option_key == option_key,
        )
    )
    return result.scalar_one_or_none()


async def adjust_option_votes(db: AsyncSession, option_id: int, delta: int) -> None:
    await db.execute(
        update(MealOption)
        .where(MealOption.id == option_id)
        .values(votes=MealOption.votes + delta)
        .execution_options(synchronize_session=False)
    )


async def reconcile_vote_counts(db: AsyncSession, week: date) -> list[ReconciledOption]:
    """
    Recompute every option counter of the week from the Vote rows and fix
    the ones that drifted. Returns the corrected options.
    """
    week_start = week_start_for(week)
    menu = await find_menu(db, week_start)
    if menu is None:
        return []

    result = await db.execute(
        select(Vote.meal_type, Vote.category, Vote.option_key, func.count(Vote.id))
        .where(Vote.week_start == week_start)
        .group_by(Vote.meal_type, Vote.category, Vote.option_key)
    )
    actual = {(m, c, k): n for m, c, k, n in result.all()}

    corrected = []
    for option in menu.options:
        count = actual.get((option.meal_type, option.category, option.option_key), 0)
        if option.votes != count:
            corrected.append(
                ReconciledOption(
                    meal_type=option.meal_type,
                    category=option.category,
                    id=option.option_key,
                    previous=option.votes,
                    actual=count,
                )
            )
            option.votes = count

    if corrected:
        await db.flush()
        logger.warning(
            "vote_counts_reconciled",
            week_start=str(week_start),
            corrected=len(corrected),
        )
    return corrected


async def get_user_votes(db: AsyncSession, user_id: str, week: date) -> dict[str, str]:
    week_start = week_start_for(week)
    result = await db.execute(
        select(Vote)
        .where(Vote.user_id == user_id, Vote.week_start == week_start)
        .execution_options(populate_existing=True)
    )
    return {
        f"{v.day}-{v.meal_type}-{v.category}": v.option_key
        for v in result.scalars().all()
    }
