"""Graph persistence for the import pipeline.

- import_runs.py: :ImportRun records (create, claim, logs, finish)
- content.py: the content-store fields the pipeline reads and writes
"""
from .import_runs import (
    ensure_import_schema,
    create_import_run,
    get_import_run,
    list_import_runs,
    find_oldest_pending_run,
    claim_import_run,
    update_import_run_logs,
    finish_import_run,
)
from .content import (
    resolve_modules,
    fetch_lessons_by_module_ids,
    fetch_content_source,
    upsert_assets,
    update_lesson_attribution_blocks,
)

__all__ = [
    # import runs
    'ensure_import_schema','create_import_run','get_import_run','list_import_runs',
    'find_oldest_pending_run','claim_import_run','update_import_run_logs','finish_import_run',
    # content store
    'resolve_modules','fetch_lessons_by_module_ids','fetch_content_source','upsert_assets',
    'update_lesson_attribution_blocks',
]
