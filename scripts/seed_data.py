"""
기본 데이터 시드 스크립트
관리자 계정과 상점 기본 상품을 생성합니다.
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from furioso.database.session import get_db_context
from furioso.models import ShopItem, User, UserRole

DEFAULT_ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@qgfurioso.com")

DEFAULT_ITEMS = [
    # (name, description, coin_price, item_type, stock)
    ("QG FURIOSO Cap", "Official team cap", 300, "physical", 50),
    ("Team Jersey 2024", "Home jersey, signed by the roster", 1500, "physical", 10),
    ("Discord VIP Role", "VIP role on the official Discord server", 200, "digital", None),
    ("Wallpaper Pack", "Exclusive HD wallpapers", 50, "digital", None),
]


def seed_admin():
    with get_db_context() as db:
        if db.query(User).filter(User.email == DEFAULT_ADMIN_EMAIL).first():
            print(f"Admin already exists: {DEFAULT_ADMIN_EMAIL}")
            return
        db.add(
            User(
                email=DEFAULT_ADMIN_EMAIL,
                nickname="admin",
                role=UserRole.SUPER_ADMIN.value,
                is_active=True,
            )
        )
    print(f"Admin created: {DEFAULT_ADMIN_EMAIL}")


def seed_shop_items():
    with get_db_context() as db:
        existing = {name for (name,) in db.query(ShopItem.name).all()}
        created = 0
        for name, description, price, item_type, stock in DEFAULT_ITEMS:
            if name in existing:
                continue
            db.add(
                ShopItem(
                    name=name,
                    description=description,
                    coin_price=price,
                    item_type=item_type,
                    stock=stock,
                    is_active=True,
                )
            )
            created += 1
    print(f"Shop items created: {created}")


if __name__ == "__main__":
    seed_admin()
    seed_shop_items()
