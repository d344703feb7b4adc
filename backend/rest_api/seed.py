"""
Seed data for development and testing.
Creates the starter menu and the default cafeteria settings.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import MenuCategory, MenuItem
from rest_api.services.domain import SettingsService
from shared.config.logging import get_logger

logger = get_logger(__name__)


# Category display order constants
CATEGORY_ORDER_BEVERAGES = 1
CATEGORY_ORDER_ENTREES = 2
CATEGORY_ORDER_SIDES = 3
CATEGORY_ORDER_DESSERTS = 4
CATEGORY_ORDER_SNACKS = 5


# (name, description, display_order, items)
# item: (name, description, price_cents, allergens, prep_time_minutes)
MENU: list[tuple[str, str, int, list[tuple[str, str, int, list[str], int]]]] = [
    ("Beverages", "Hot and cold drinks", CATEGORY_ORDER_BEVERAGES, [
        ("Coffee", "Freshly brewed coffee", 250, [], 2),
        ("Latte", "Espresso with steamed milk", 400, ["dairy"], 3),
        ("Cappuccino", "Espresso with foamed milk", 400, ["dairy"], 3),
        ("Iced Tea", "Cold brewed tea", 200, [], 1),
        ("Orange Juice", "Fresh squeezed orange juice", 350, [], 2),
        ("Smoothie - Berry Blast", "Mixed berries smoothie", 550, ["dairy"], 4),
        ("Hot Chocolate", "Rich hot chocolate", 350, ["dairy"], 3),
        ("Water Bottle", "Bottled water 16oz", 150, [], 1),
    ]),
    ("Entrees", "Main dishes and meals", CATEGORY_ORDER_ENTREES, [
        ("Hamburger", "Classic beef burger with lettuce and tomato", 850, ["dairy", "gluten"], 12),
        ("Cheeseburger", "Beef burger with cheese", 900, ["dairy", "gluten"], 12),
        ("Grilled Chicken Sandwich", "Grilled chicken breast with mayo", 800, ["dairy", "gluten"], 10),
        ("Veggie Burger", "Plant-based patty with veggies", 850, ["gluten", "soy"], 10),
        ("Caesar Salad", "Romaine lettuce with caesar dressing", 750, ["dairy", "fish"], 5),
        ("Chicken Caesar Wrap", "Grilled chicken caesar in tortilla", 950, ["dairy", "gluten"], 8),
        ("Pizza Slice - Pepperoni", "Pepperoni pizza slice", 450, ["dairy", "gluten"], 6),
        ("Pizza Slice - Cheese", "Classic cheese pizza slice", 400, ["dairy", "gluten"], 6),
        ("Pasta Alfredo", "Fettuccine with creamy alfredo sauce", 1000, ["dairy", "gluten"], 15),
        ("Tacos (3)", "Three soft tacos with beef or chicken", 800, ["dairy", "gluten"], 10),
    ]),
    ("Sides", "Side dishes and accompaniments", CATEGORY_ORDER_SIDES, [
        ("French Fries", "Crispy golden fries", 350, [], 8),
        ("Sweet Potato Fries", "Crispy sweet potato fries", 400, [], 8),
        ("Onion Rings", "Beer-battered onion rings", 450, ["gluten"], 10),
        ("Side Salad", "Mixed greens with dressing", 300, [], 3),
        ("Coleslaw", "Creamy coleslaw", 250, ["dairy"], 2),
        ("Fruit Cup", "Fresh seasonal fruit", 350, [], 3),
    ]),
    ("Desserts", "Sweet treats and desserts", CATEGORY_ORDER_DESSERTS, [
        ("Chocolate Chip Cookie", "Warm chocolate chip cookie", 250, ["dairy", "gluten"], 2),
        ("Brownie", "Fudgy chocolate brownie", 350, ["dairy", "eggs", "gluten"], 2),
        ("Ice Cream Cup", "Vanilla or chocolate ice cream", 300, ["dairy"], 2),
        ("Apple Pie Slice", "Classic apple pie", 400, ["gluten"], 3),
        ("Cheesecake Slice", "New York style cheesecake", 500, ["dairy", "eggs", "gluten"], 2),
    ]),
    ("Snacks", "Quick bites and snacks", CATEGORY_ORDER_SNACKS, [
        ("Chips - Regular", "Potato chips", 200, [], 1),
        ("Chips - BBQ", "BBQ flavored chips", 200, [], 1),
        ("Pretzels", "Salted pretzels", 250, ["gluten"], 1),
        ("Granola Bar", "Healthy granola bar", 250, ["nuts"], 1),
        ("Trail Mix", "Mixed nuts and dried fruit", 300, ["nuts"], 1),
    ]),
]


def seed_menu(db: Session) -> int:
    """
    Insert the starter menu.
    Idempotent: skipped when any category exists. Returns items added.
    """
    if db.scalar(select(MenuCategory.id).limit(1)):
        logger.info("Menu already seeded, skipping")
        return 0

    logger.info("Seeding menu")
    added = 0
    for name, description, display_order, items in MENU:
        category = MenuCategory(name=name, description=description, display_order=display_order)
        for item_name, item_description, price_cents, allergens, prep in items:
            category.items.append(
                MenuItem(
                    name=item_name,
                    description=item_description,
                    price_cents=price_cents,
                    allergens=allergens,
                    prep_time_minutes=prep,
                )
            )
            added += 1
        db.add(category)
    db.commit()
    logger.info("Menu seeded", categories=len(MENU), items=added)
    return added


def seed(db: Session) -> None:
    """Seed menu and default settings. Safe to run on every startup."""
    seed_menu(db)
    added = SettingsService(db).seed_defaults()
    if added:
        logger.info("Default settings seeded", count=added)
