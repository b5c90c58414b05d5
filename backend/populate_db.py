import os
import sys

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from sqlalchemy.orm import Session

# Database models and setup
from database import SessionLocal, init_db
from models.menu import FoodItem, FoodItemVariant
from models.users import User, UserRole
from utils.hashing import get_password_hash

# Configuration
ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@storefront.example.com")
ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD", "admin123")

# name, category, description, [(variant label, price)]
STARTER_MENU = [
    ("Margherita Pizza", "Pizza", "Tomato, mozzarella and fresh basil",
     [("Regular", 199.0), ("Medium", 349.0), ("Large", 499.0)]),
    ("Farmhouse Pizza", "Pizza", "Capsicum, onion, mushroom and tomato",
     [("Regular", 249.0), ("Medium", 429.0), ("Large", 599.0)]),
    ("Chicken Biryani", "Biryani", "Slow-cooked basmati rice with spiced chicken",
     [("Half", 180.0), ("Full", 320.0)]),
    ("Veg Biryani", "Biryani", "Basmati rice with seasonal vegetables",
     [("Half", 150.0), ("Full", 260.0)]),
    ("Classic Burger", "Burgers", "Grilled patty, cheddar, lettuce and pickles",
     [("Single", 149.0), ("Double", 229.0)]),
    ("Masala Dosa", "South Indian", "Crispy dosa with potato masala, sambar and chutney",
     [("Plate", 120.0)]),
    ("Cold Coffee", "Beverages", "Chilled coffee blended with ice cream",
     [("Small", 90.0), ("Large", 140.0)]),
    # Listed without variants: shown on the menu but not orderable yet
    ("Chef's Special Thali", "Meals", "Rotating daily selection", []),
]
# End Configuration


def seed_admin(session: Session) -> User:
    """Creates the admin account once; an existing one is left untouched."""
    admin = session.query(User).filter(User.email == ADMIN_EMAIL).first()
    if admin:
        return admin
    admin = User(
        email=ADMIN_EMAIL,
        password_hash=get_password_hash(ADMIN_PASSWORD),
        full_name="Store Admin",
        email_confirmed=True,
        auth_provider="email",
    )
    admin.role_record = UserRole(role="admin")
    session.add(admin)
    session.commit()
    print(f"Admin account created: {ADMIN_EMAIL}")
    return admin


def seed_menu(session: Session) -> int:
    """Inserts starter dishes that are not on the menu yet; returns how many."""
    inserted = 0
    for name, category, description, variants in STARTER_MENU:
        if session.query(FoodItem).filter(FoodItem.name == name).first():
            continue
        item = FoodItem(name=name, category=category, description=description,
                        image_url="/placeholder.svg", in_stock=True)
        item.variants = [FoodItemVariant(label=label, price=price) for label, price in variants]
        session.add(item)
        inserted += 1
    session.commit()
    print(f"Inserted {inserted} menu items.")
    return inserted


def seed(session: Session):
    seed_admin(session)
    seed_menu(session)


def populate_database():
    """Main execution function to populate database."""
    init_db()
    session = SessionLocal()
    try:
        seed(session)
    finally:
        session.close()


if __name__ == "__main__":
    populate_database()
