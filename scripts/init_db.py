"""Create the generated-documents table.

Intended for local/dev environments; production schemas are managed outside this repo.
"""

import asyncio
import os
import sys

# Add the project root to the path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))


async def create_tables() -> None:
  """Create every table registered on the declarative base."""
  # Import after path setup so the script works when run directly.
  from lessonkit.core.database import Base, get_db_engine
  from lessonkit.schema import generated_documents  # noqa: F401

  engine = get_db_engine()
  if engine is None:
    print("Error: LESSONKIT_PG_DSN is not set.")
    sys.exit(1)

  try:
    async with engine.begin() as conn:
      await conn.run_sync(Base.metadata.create_all)
    print(f"Created tables: {', '.join(sorted(Base.metadata.tables))}")
  except Exception as e:
    print(f"Error creating tables: {e}")
    sys.exit(1)
  finally:
    await engine.dispose()


if __name__ == "__main__":
  if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
  asyncio.run(create_tables())
