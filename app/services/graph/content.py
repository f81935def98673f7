import json
from typing import Dict, Iterable, List, Optional

from app.db.neo4j_connector import run_cypher
from app.models.content import AssetRow, ContentSourceRecord, LessonSummary, ModuleRecord
from app.models.import_run import now_iso


def resolve_modules(slugs: Iterable[str]) -> Dict[str, ModuleRecord]:
    """Map module slugs to their records; unknown slugs are simply absent."""
    slugs = [s for s in dict.fromkeys(slugs) if s]
    if not slugs:
        return {}
    query = (
        "UNWIND $slugs AS slug "
        "MATCH (m:Module {slug: slug}) "
        "RETURN m.id AS id, m.slug AS slug"
    )
    return {row["slug"]: ModuleRecord(**row) for row in run_cypher(query, {"slugs": slugs})}


def fetch_lessons_by_module_ids(module_ids: Iterable[int]) -> Dict[int, List[LessonSummary]]:
    ids = list(dict.fromkeys(module_ids))
    if not ids:
        return {}
    query = (
        "MATCH (m:Module)-[:HAS_LESSON]->(l:Lesson) "
        "WHERE m.id IN $ids "
        "RETURN l.id AS id, m.id AS module_id, l.slug AS slug, l.title AS title, "
        "       l.attribution_block AS attribution_block "
        "ORDER BY m.id, l.id"
    )
    out: Dict[int, List[LessonSummary]] = {}
    for row in run_cypher(query, {"ids": ids}):
        lesson = LessonSummary(**row)
        out.setdefault(lesson.module_id, []).append(lesson)
    return out


def fetch_content_source(name: str) -> Optional[ContentSourceRecord]:
    query = (
        "MATCH (s:ContentSource {name: $name}) "
        "RETURN s.id AS id, s.name AS name, s.license AS license, s.license_url AS license_url, "
        "       s.attribution_text AS attribution_text "
        "LIMIT 1"
    )
    res = run_cypher(query, {"name": name})
    return ContentSourceRecord(**res[0]) if res else None


def upsert_assets(rows: List[AssetRow]) -> int:
    """MERGE assets on (module_id, url) in one transaction; returns rows written.

    Metadata is stored as a JSON string; the asset is linked to its module and,
    when set, to its lesson.
    """
    if not rows:
        return 0
    payload = []
    for row in rows:
        data = row.model_dump(exclude={"metadata"})
        data["metadata_json"] = json.dumps(row.metadata, ensure_ascii=False, sort_keys=True)
        payload.append(data)
    query = (
        "UNWIND $rows AS row "
        "MERGE (a:Asset {module_id: row.module_id, url: row.url}) "
        "SET a.lesson_id = row.lesson_id, a.source_id = row.source_id, "
        "    a.title = row.title, a.description = row.description, a.kind = row.kind, "
        "    a.license = row.license, a.license_url = row.license_url, "
        "    a.attribution_text = row.attribution_text, a.metadata = row.metadata_json, "
        "    a.tags = row.tags, a.updated_at = $now "
        "WITH a, row "
        "MATCH (m:Module {id: row.module_id}) "
        "MERGE (m)-[:HAS_ASSET]->(a) "
        "WITH a, row "
        "OPTIONAL MATCH (l:Lesson {id: row.lesson_id}) "
        "FOREACH (_ IN CASE WHEN l IS NULL THEN [] ELSE [1] END | MERGE (l)-[:HAS_ASSET]->(a)) "
        "RETURN count(a) AS upserted"
    )
    res = run_cypher(query, {"rows": payload, "now": now_iso()})
    return int(res[0].get("upserted") or 0) if res else 0


def update_lesson_attribution_blocks(updates: Dict[int, str]) -> int:
    if not updates:
        return 0
    query = (
        "UNWIND $updates AS u "
        "MATCH (l:Lesson {id: u.id}) "
        "SET l.attribution_block = u.block "
        "RETURN count(l) AS updated"
    )
    res = run_cypher(query, {"updates": [{"id": k, "block": v} for k, v in updates.items()]})
    return int(res[0].get("updated") or 0) if res else 0
