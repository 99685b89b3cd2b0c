# persistence of finished documents as json files
import re
import json
import shutil
import logging
from pathlib import Path
from collections import Counter
from typing import List, Dict, Any, Optional

from .models import ContentKind, GeneratedDocument

logger = logging.getLogger(__name__)

DOCUMENT_ID = re.compile(r"^[A-Za-z0-9_\-]+$")


# stores generated documents under the output directory
class DocumentStore:
    def __init__(self, output_dir: str = "outputs"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, document_id: str) -> Path:
        if not DOCUMENT_ID.match(document_id):
            raise ValueError(f"Invalid document id: {document_id!r}")
        return self.output_dir / f"{document_id}.json"

    # save document to a json file and point latest.json at it
    def save(self, document: GeneratedDocument) -> Path:
        """Export document to JSON file"""
        json_path = self._path(document.id)
        try:
            with open(json_path, 'w', encoding='utf-8') as f:
                json.dump(document.model_dump(mode="json"), f, indent=2, ensure_ascii=False)
            logger.info(f"  ✓ Saved: {json_path}")
        except OSError as e:
            logger.error(f"Error exporting document: {str(e)}")
            raise

        # update latest.json pointer for the viewer default
        try:
            shutil.copyfile(str(json_path), str(self.output_dir / "latest.json"))
        except OSError as e:
            logger.warning(f"  ! Could not update latest.json: {e}")
        return json_path

    # load document from a json file, None when it does not exist
    def load(self, document_id: str) -> Optional[GeneratedDocument]:
        json_path = self._path(document_id)
        if not json_path.exists():
            return None
        return self.load_file(str(json_path))

    def load_file(self, filepath: str) -> GeneratedDocument:
        """Load a document from any JSON file path"""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return GeneratedDocument(**data)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading document: {str(e)}")
            raise

    # summaries of every stored document, newest first
    def list_documents(self) -> List[Dict[str, Any]]:
        summaries = []
        for json_path in self.output_dir.glob("*.json"):
            if json_path.name == "latest.json":
                continue
            try:
                document = self.load_file(str(json_path))
            except (OSError, ValueError):
                logger.warning(f"  ! Skipping unreadable document: {json_path.name}")
                continue
            summaries.append({
                "id": document.id,
                "kind": document.kind.value,
                "title": document.title,
                "units": len(document.units),
                "created_at": document.created_at,
            })
        return sorted(summaries, key=lambda s: s["created_at"], reverse=True)

    # calculate statistics about a document
    def get_statistics(self, document: GeneratedDocument) -> Dict[str, Any]:
        """Get statistics about the document"""
        total_units = len(document.units)
        stats: Dict[str, Any] = {
            "kind": document.kind.value,
            "total_units": total_units,
            "placeholder_units": len([u for u in document.units if u.get("is_placeholder")]),
        }

        if document.kind == ContentKind.PRESENTATION:
            stats["slides_with_image"] = len([u for u in document.units if u.get("root_image")])
            stats["total_nodes"] = sum(_count_nodes(u.get("content", [])) for u in document.units)
            stats["layouts"] = dict(Counter(u.get("layout") or "default" for u in document.units))
            return stats

        if document.kind == ContentKind.FLASHCARDS:
            stats["average_answer_length"] = (
                sum(len(u.get("answer", "")) for u in document.units) / total_units if total_units > 0 else 0
            )
            return stats

        stats["units_by_type"] = dict(Counter(u.get("unit_type", "content") for u in document.units))
        body_lines = [len([l for l in u.get("body", "").split("\n") if l.strip()]) for u in document.units]
        stats["average_body_lines"] = sum(body_lines) / total_units if total_units > 0 else 0

        if document.kind == ContentKind.QUIZ:
            stats["questions_with_answer"] = len([u for u in document.units if u.get("correct_answer") is not None])
            stats["questions_with_four_options"] = len([u for u in document.units if len(u.get("options", [])) == 4])
            stats["quizzes"] = len({u.get("quiz_number", 1) for u in document.units})

        if document.outline:
            stats["outline_items"] = len(document.outline)
        return stats


def _count_nodes(nodes: List[Dict[str, Any]]) -> int:
    return sum(1 + _count_nodes(node.get("children", [])) for node in nodes)
