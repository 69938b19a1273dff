"""Generate one material from a topic dataset JSON file.

Usage:
  python scripts/generate_material.py dataset.json worksheet
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from lessonkit.ai.feedback import InMemoryFeedbackStore, JsonFileFeedbackStore  # noqa: E402
from lessonkit.ai.orchestrator import MATERIAL_TYPES, MaterialGenerator, material_ref  # noqa: E402
from lessonkit.ai.providers import get_text_model  # noqa: E402
from lessonkit.config import get_settings  # noqa: E402
from lessonkit.core.database import get_db_engine  # noqa: E402
from lessonkit.core.logging import initialize_logging  # noqa: E402
from lessonkit.schema.dataset import TopicDataSet  # noqa: E402
from lessonkit.storage.local_cache import LocalDocumentCache  # noqa: E402
from lessonkit.storage.persistence import PersistenceOrchestrator  # noqa: E402
from lessonkit.storage.postgres_documents_repo import PostgresDocumentsRepository  # noqa: E402


def _parse_args() -> argparse.Namespace:
  parser = argparse.ArgumentParser(description="Generate a teaching material from a topic dataset.")
  parser.add_argument("dataset", type=Path, help="Path to a topic dataset JSON file (camelCase or snake_case keys).")
  parser.add_argument("material_type", choices=MATERIAL_TYPES, help="Material to generate.")
  parser.add_argument("--feedback", action="append", default=[], help="Extra instruction for this material type; may be repeated.")
  parser.add_argument("--save-dataset", action="store_true", help="Append the generated material reference to the dataset file.")
  return parser.parse_args()


async def main() -> int:
  args = _parse_args()
  settings = get_settings()
  initialize_logging(settings)

  dataset = TopicDataSet.model_validate_json(args.dataset.read_text(encoding="utf-8"))
  feedback_store = JsonFileFeedbackStore(Path(settings.feedback_path)) if settings.feedback_path else InMemoryFeedbackStore()
  for item in args.feedback:
    feedback_store.append(args.material_type, item)

  try:
    remote = PostgresDocumentsRepository()
  except RuntimeError:
    print("Error: LESSONKIT_PG_DSN is not set.")
    return 1
  persistence = PersistenceOrchestrator(LocalDocumentCache(Path(settings.cache_dir), max_bytes=settings.cache_max_bytes), remote)
  model = get_text_model(settings)
  try:
    result = await MaterialGenerator(model, persistence, feedback_store, settings).generate(dataset, args.material_type)
  finally:
    await model.aclose()
    engine = get_db_engine()
    if engine is not None:
      await engine.dispose()

  if not result.success:
    print(f"Error: {result.error}")
    return 1
  print(f"Generated {result.id}")
  if args.save_dataset:
    updated = dataset.with_generated_material(material_ref(args.material_type, result))
    args.dataset.write_text(updated.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
    print(f"Recorded {result.id} in {args.dataset}")
  if result.preview:
    print()
    print(result.preview)
  return 0


if __name__ == "__main__":
  if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
  sys.exit(asyncio.run(main()))
