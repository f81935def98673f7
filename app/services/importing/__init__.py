"""Content import pipeline.

Structure:
- licenses.py / attribution.py / safety.py / url_health.py: leaf helpers
- providers.py: provider catalogue (closed set of provider ids)
- normalizers/: raw provider file -> normalized dataset or mapping
- store.py: persistence contract used by the queue and pipeline
- pipeline.py: one run end to end (resolve, validate, upsert, attribute)
- queue.py: polling worker that claims pending runs
- worker.py: process entry point for the queue
- runner.py: normalization CLI (feeds the queue, not part of it)
"""
