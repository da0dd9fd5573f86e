"""
Database seeding script for local tracking development.

Creates an ADMIN, a BUSINESS and a DRIVER account plus two deliveries
assigned to the driver, then prints bearer tokens for each account.
Identity is issued elsewhere on the platform; these tokens are only for
local use.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.app.db.session import AsyncSessionLocal, engine, Base
from backend.app.core.jwt import create_access_token
from backend.app.models.user import User
from backend.app.models.delivery import Delivery
from backend.app.models.enums import UserRole, DeliveryStatus, ServiceType
from sqlalchemy import select

SEED_USERS = [
    ("admin", "admin@tracking.local", UserRole.ADMIN),
    ("shop", "shop@tracking.local", UserRole.BUSINESS),
    ("driver", "driver@tracking.local", UserRole.DRIVER),
]

SEED_DELIVERIES = [
    ("SEED-001", ServiceType.EXPRESS, "Marina customer", 25.080328, 55.139309, "Dubai Marina"),
    ("SEED-002", ServiceType.STANDARD, "Downtown customer", 25.197197, 55.274376, "Downtown Dubai"),
]


def token_for(user: User) -> str:
    return create_access_token(data={"sub": user.username, "user_id": user.id, "role": user.role.value})


async def seed_tracking_data() -> dict:
    """
    Seed accounts and deliveries if the admin account does not exist yet.
    
    Returns:
        Mapping of username -> User (existing or created)
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    async with AsyncSessionLocal() as db:
        print("🌱 Starting tracking data seeding...")
        
        result = await db.execute(select(User).where(User.username.in_([u[0] for u in SEED_USERS])))
        users = {u.username: u for u in result.scalars().all()}
        
        if "admin" in users:
            print("ℹ️  Seed accounts already exist, skipping seeding")
            return users
        
        for username, email, role in SEED_USERS:
            user = User(email=email, username=username, role=role, is_active=True)
            db.add(user)
            users[username] = user
        await db.flush()
        
        for tracking_number, service_type, customer, lat, lon, address in SEED_DELIVERIES:
            db.add(Delivery(
                tracking_number=tracking_number,
                business_id=users["shop"].id,
                driver_id=users["driver"].id,
                status=DeliveryStatus.ASSIGNED,
                service_type=service_type,
                customer_name=customer,
                delivery_latitude=lat,
                delivery_longitude=lon,
                delivery_address=address
            ))
        
        await db.commit()
        print(f"✅ Created {len(SEED_USERS)} accounts and {len(SEED_DELIVERIES)} deliveries")
        return users


async def main():
    users = await seed_tracking_data()
    print("\nBearer tokens:")
    for username, user in users.items():
        print(f"  - {user.role.value:<8} {username}: {token_for(user)}")


if __name__ == "__main__":
    asyncio.run(main())
