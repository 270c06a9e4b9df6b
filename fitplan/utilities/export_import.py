"""
Import and export of plan collections between JSON files and a document store.

The file layout is one object with an array per collection:
    {"workoutPlans": [...], "dietPlans": [...], "categories": [...], "dietCategories": [...]}
"""
import argparse
import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from fitplan.infra.Document_Store import DocumentStore
from fitplan.utilities.constants import PLAN_COLLECTIONS, CATEGORY_COLLECTIONS
from fitplan.utilities.errors import ValidationError

logger = logging.getLogger(__name__)

# Categories first so plans can reference them
COLLECTIONS = (*CATEGORY_COLLECTIONS.values(), *PLAN_COLLECTIONS.values())


class DataImporter:
    """Load collections from a JSON file into a document store."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def import_file(self, input_path: Path, merge: bool = True) -> Dict[str, int]:
        """
        Import every known collection found in the file.

        Args:
            input_path: JSON file with one array per collection
            merge: if True, documents whose id or name already exists are skipped
        Returns:
            number of documents written per collection
        """
        try:
            with open(input_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"{input_path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError(f"{input_path} must contain a JSON object of collections")

        counts: Dict[str, int] = {}
        for collection in COLLECTIONS:
            docs = data.get(collection)
            if not isinstance(docs, list):
                logger.info(f"No {collection} array found in {input_path}")
                continue
            counts[collection] = await self._import_collection(collection, docs, merge)
        logger.info(f"Import complete: {counts}")
        return counts

    async def _import_collection(self, collection: str, docs: list, merge: bool) -> int:
        existing_ids, existing_names = set(), set()
        if merge:
            for doc in await self.store.read_all(collection):
                existing_ids.add(str(doc.get('id', '')))
                existing_names.add(str(doc.get('name', '')).strip().lower())
        written = 0
        for doc in docs:
            if not isinstance(doc, dict):
                continue
            key = str(doc.get('id') or '')
            name = str(doc.get('name', '')).strip()
            if merge and (key in existing_ids or name.lower() in existing_names):
                logger.debug(f"Skipping existing {collection} document: {name or key}")
                continue
            body = {k: v for k, v in doc.items() if k != 'id'}
            if key:
                # Keep given ids: plans reference categories by id
                await self.store.update(collection, key, body, merge=False)
            else:
                key = await self.store.create(collection, body)
            existing_ids.add(key)
            existing_names.add(name.lower())
            written += 1
            logger.info(f"Added {collection} document: {name or key}")
        return written


class DataExporter:
    """Dump document store collections to a JSON file."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def export_file(self, output_path: Optional[Path] = None) -> Path:
        if output_path is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            output_path = Path(f"fitplan_export_{timestamp}.json")
        data = {collection: await self.store.read_all(collection) for collection in COLLECTIONS}
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        logger.info(f"Exported {sum(len(v) for v in data.values())} documents to {output_path}")
        return Path(output_path)


def _open_store(args) -> DocumentStore:
    from fitplan.infra.Document_Store import HttpDocumentStore, JsonFileDocumentStore
    from fitplan.infra.paths import STORE_FILE
    from fitplan.utilities.config import DOCUMENT_STORE_URL, DOCUMENT_STORE_TOKEN, DOCUMENT_STORE_TIMEOUT

    url = args.url or DOCUMENT_STORE_URL
    if url:
        return HttpDocumentStore(url, token=DOCUMENT_STORE_TOKEN, timeout=DOCUMENT_STORE_TIMEOUT)
    return JsonFileDocumentStore(args.store_file or STORE_FILE)


async def _run(args) -> None:
    store = _open_store(args)
    try:
        if args.action == 'export':
            result = await DataExporter(store).export_file(Path(args.file) if args.file else None)
            print(f"Exported to: {result}")
        else:
            counts = await DataImporter(store).import_file(Path(args.file), merge=not args.replace)
            print(f"Imported from {args.file}: {counts}")
    finally:
        await store.aclose()


# CLI interface
def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description='Import/export FitPlan collections')
    parser.add_argument('action', choices=['export', 'import'], help='Action to perform')
    parser.add_argument('--file', help='Input/output JSON file path')
    parser.add_argument('--url', help='Document store URL (defaults to DOCUMENT_STORE_URL)')
    parser.add_argument('--store-file', help='Local document file when no URL is configured')
    parser.add_argument('--replace', action='store_true', help='Overwrite documents that already exist')
    args = parser.parse_args(argv)
    if args.action == 'import' and not args.file:
        parser.error('--file is required for import')
    logging.basicConfig(level=logging.INFO)
    asyncio.run(_run(args))


if __name__ == "__main__":
    main()
