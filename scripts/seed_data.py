"""
Demo data: one aggregate-points business and one stamp-card business,
each with a few coupons.
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from loyaltyapi.database.session import get_db_context
from loyaltyapi.models.business import Business, LoyaltyType
from loyaltyapi.models.coupon import Coupon

DEMO_BUSINESSES = [
    {
        "name": "Corner Coffee",
        "loyalty_type": LoyaltyType.POINTS,
        "description": "Points on every purchase",
        "coupons": [
            ("Free espresso", 50),
            ("Free latte", 80),
            ("Pastry of the day", 120),
        ],
    },
    {
        "name": "Noodle Bar",
        "loyalty_type": LoyaltyType.COUPON_SPECIFIC,
        "description": "Stamp cards per dish",
        "coupons": [
            ("10th ramen free", 10),
            ("5th dumpling plate free", 5),
        ],
    },
]


def seed_businesses():
    with get_db_context() as db:
        for entry in DEMO_BUSINESSES:
            existing = db.query(Business).filter(Business.name == entry["name"]).first()
            if existing is not None:
                print(f"Skipping {entry['name']}: already seeded ({existing.id})")
                continue

            business = Business(
                name=entry["name"],
                loyalty_type=entry["loyalty_type"],
                description=entry["description"],
            )
            db.add(business)
            db.flush()

            for name, points_required in entry["coupons"]:
                db.add(
                    Coupon(
                        business_id=business.id,
                        name=name,
                        points_required=points_required,
                        is_active=True,
                    )
                )
            db.commit()
            print(f"Seeded {business.name} ({business.id}) with {len(entry['coupons'])} coupons")


if __name__ == "__main__":
    seed_businesses()
