import argparse
import json
import logging
import os
import re
import sys
from pathlib import Path

import requests

from .config import get_settings

logger = logging.getLogger(__name__)

# Phase ordering (lower means earlier): users must exist before their
# batches are enrolled, and students must be enrolled before they are graded
KIND_PHASE_ORDER = {
    "users": 10,
    "enrollments": 20,
    "grades": 30,
}

# Filename → kind patterns (fallback when no manifest override)
PATTERNS = [
    (r"(^|/)users.*\.csv$", "users"),
    (r"(^|/)enrollments.*\.csv$", "enrollments"),
    (r"(^|/)grades.*\.csv$", "grades"),
]


def manifest_path_for(data_dir: str) -> str:
    return os.getenv("IMPORT_MANIFEST", str(Path(data_dir) / "import_manifest.json"))


def infer_kind(path: str) -> str | None:
    p = path.replace("\\", "/")
    for pat, kind in PATTERNS:
        if re.search(pat, p, flags=re.IGNORECASE):
            return kind
    return None


def load_manifest(manifest_path: str | None):
    if not manifest_path or not os.path.isfile(manifest_path):
        return None
    with open(manifest_path, "r", encoding="utf-8") as f:
        return json.load(f)


def discover_csvs(root: str, pack: str | None = None) -> list[str]:
    root_path = Path(root)
    search_root = root_path / "packs" / pack if pack else root_path
    return sorted(str(p) for p in search_root.rglob("*.csv"))


def classify_files(files: list[str], manifest: dict | None) -> list[dict]:
    classified = []
    override_map = {}
    if manifest and "overrides" in manifest:
        for ov in manifest["overrides"]:
            override_map[os.path.normpath(ov["file"])] = ov["kind"]

    for f in files:
        nf = os.path.normpath(f)
        kind = override_map.get(nf) or infer_kind(nf)
        if kind not in KIND_PHASE_ORDER:
            logger.warning("skipping unrecognized CSV (no kind match): %s", f)
            continue
        classified.append({"path": nf, "kind": kind, "order": KIND_PHASE_ORDER[kind]})
    classified.sort(key=lambda x: (x["order"], x["path"]))
    return classified


def import_file(base_url: str, kind: str, path: str, dry_run: bool = False) -> dict:
    url = f"{base_url.rstrip('/')}/import/{kind}"
    if dry_run:
        logger.info("[dry-run] POST %s  file=%s", url, path)
        return {"ok": True, "status": None, "summary": None}
    with open(path, "rb") as f:
        files = {"file": (os.path.basename(path), f, "text/csv")}
        resp = requests.post(url, files=files, timeout=120)

    try:
        body = resp.json()
    except ValueError:
        body = {}
    summary = body.get("summary") if isinstance(body, dict) else None
    if resp.status_code == 200:
        logger.info("[ok] %-12s <- %s  %s", kind, path, body.get("message", ""))
        return {"ok": True, "status": resp.status_code, "summary": summary}
    logger.error("[ERR] %-12s <- %s  %s %s", kind, path, resp.status_code, resp.text[:400])
    return {"ok": False, "status": resp.status_code, "summary": summary}


def run_import(data_dir: str,
               base_url: str | None = None,
               pack: str | None = None,
               manifest_path: str | None = None,
               dry_run: bool = False) -> dict:
    """Callable entrypoint: returns a dict with plan and results."""
    manifest = load_manifest(manifest_path or manifest_path_for(data_dir))
    base_url = base_url or (manifest or {}).get("base_url") or get_settings().import_base_url

    csvs = discover_csvs(data_dir, pack=pack)
    if not csvs:
        return {
            "ok": False,
            "base_url": base_url,
            "plan": [],
            "results": [],
            "message": f"No CSVs found under {data_dir}" + (f"/packs/{pack}" if pack else ""),
        }
    plan = classify_files(csvs, manifest)
    if not plan:
        return {
            "ok": False,
            "base_url": base_url,
            "plan": [],
            "results": [],
            "message": f"Found {len(csvs)} CSVs but none matched known kinds. Check file names or manifest.",
        }
    results = []
    for item in plan:
        outcome = import_file(base_url, item["kind"], item["path"], dry_run=dry_run)
        results.append({"kind": item["kind"], "path": item["path"], **outcome})
    return {"ok": all(r["ok"] for r in results), "base_url": base_url, "plan": plan, "results": results}


def main(argv: list[str] | None = None):
    settings = get_settings()
    ap = argparse.ArgumentParser(description="Import user, enrollment and grade CSVs in dependency order.")
    ap.add_argument("--data", default=settings.data_dir, help="Root data folder (default env DATA_DIR or ./data)")
    ap.add_argument("--pack", default=None, help="Only import a specific pack under data/packs/<pack>")
    ap.add_argument("--base-url", default=None, help="Server base URL (default env IMPORT_BASE_URL)")
    ap.add_argument("--manifest", default=None, help="Optional import_manifest.json path")
    ap.add_argument("--dry-run", action="store_true", help="Don't POST, just show the plan")
    args = ap.parse_args(argv)

    logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s %(message)s")
    summary = run_import(data_dir=args.data, base_url=args.base_url, pack=args.pack,
                         manifest_path=args.manifest, dry_run=args.dry_run)

    print(f"Server: {summary['base_url']}")
    print(f"Data root: {args.data}  Pack: {args.pack or '(all)'}")
    if summary.get("message"):
        print(summary["message"])
    print("Import plan:")
    for item in summary["plan"]:
        print(f"{item['order']:>3}  {item['kind']:<12}  {item['path']}")
    sys.exit(0 if summary["ok"] else 2)


if __name__ == "__main__":
    main()
