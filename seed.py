import json
import sys
from pathlib import Path

from nonogram import create_app, db
from nonogram.games.core.coerce_utils import DIFFICULTIES
from nonogram.games.core.puzzle_store_nonogram import DEFAULT_PUZZLES_PATH, build_puzzle, warmup_store
from nonogram.models import PuzzleRow


def ensure_puzzle(puzzle, position):
    row = PuzzleRow.query.filter_by(external_id=puzzle.id).first()
    if row:
        return False
    db.session.add(PuzzleRow(
        external_id=puzzle.id,
        name=puzzle.name,
        difficulty=puzzle.difficulty,
        size=puzzle.size,
        solution_json=puzzle.solution_lists(),
        position=position,
    ))
    return True


def import_puzzles(path):
    path = Path(path)
    if not path.exists():
        print(f"⚠️ puzzles file not found at: {path}")
        return 0

    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        print("⚠️ puzzles file must be an object keyed by difficulty.")
        return 0

    inserted = 0
    for lvl in DIFFICULTIES:
        for position, raw in enumerate(data.get(lvl) or []):
            try:
                puzzle = build_puzzle(raw, lvl)
            except ValueError as e:
                print(f"   skip {lvl}[{position}]: {e}")
                continue
            if ensure_puzzle(puzzle, position):
                inserted += 1
    db.session.commit()
    return inserted


def run(path=DEFAULT_PUZZLES_PATH):
    app = create_app()
    with app.app_context():
        db.create_all()
        inserted = import_puzzles(path)
        print(f"✅ Imported {inserted} puzzles from {path}")

        warmup_store(force=True)
        for lvl in DIFFICULTIES:
            print(f"   {lvl}: {PuzzleRow.query.filter_by(difficulty=lvl, is_active=True).count()}")


if __name__ == "__main__":
    run(sys.argv[1] if len(sys.argv) > 1 else DEFAULT_PUZZLES_PATH)
