import asyncio
import os
import sys
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv

# Add parent directory to path so the script runs from a source checkout
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from kanatype.services.sessions import MongoSessionStore


async def sweep_mongo_sessions(uri: str, db_name: str) -> int:
    print("\nChecking game sessions...")

    if not uri:
        print("   Skipping (No URI provided)")
        return 0

    # Mask credential for logs
    masked_uri = uri.split("@")[-1] if "@" in uri else "localhost"
    print(f"   Connecting to {masked_uri} (DB: {db_name})...")

    client = AsyncIOMotorClient(uri, tz_aware=True)
    try:
        store = MongoSessionStore(get_db=lambda: client[db_name])
        deleted = await store.sweep(datetime.now(timezone.utc))
        print(f"   Removed {deleted} expired sessions")
        return deleted
    except Exception as e:
        print(f"   Error sweeping sessions: {e}")
        return 0
    finally:
        client.close()


async def main():
    # Load .env from the project root (parent of this script)
    env_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env")
    load_dotenv(env_path)

    mongo_uri = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    db_name = os.getenv("MONGODB_DATABASE", "kanatype")
    await sweep_mongo_sessions(mongo_uri, db_name)

    # Redis-backed sessions expire on their own
    print("\nDone.")


if __name__ == "__main__":
    asyncio.run(main())
