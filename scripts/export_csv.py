import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from quizportal.logging_config import setup_logging
from quizportal.reports import export_records_csv, export_students_csv


def main():
    parser = argparse.ArgumentParser(description="Export student summaries or quiz records as CSV.")
    parser.add_argument("type", choices=["students", "records"])
    parser.add_argument("--subject-id", type=int, required=True)
    parser.add_argument("--year", type=int)
    parser.add_argument("--class", dest="class_number", type=int)
    parser.add_argument("--grade-from")
    parser.add_argument("--grade-to")
    parser.add_argument("--date-from", help="YYYY-MM-DD (records only)")
    parser.add_argument("--date-to", help="YYYY-MM-DD (records only)")
    parser.add_argument("--out-dir", default=".")
    args = parser.parse_args()

    logger = setup_logging()

    filters = dict(
        year=args.year,
        class_number=args.class_number,
        grade_from=args.grade_from,
        grade_to=args.grade_to,
    )
    try:
        if args.type == "students":
            filename, text = export_students_csv(args.subject_id, **filters)
        else:
            filename, text = export_records_csv(
                args.subject_id, date_from=args.date_from, date_to=args.date_to, **filters
            )
    except Exception:
        logger.exception("CSV export failed")
        raise

    out_path = Path(args.out_dir) / filename
    # newline="" keeps the CRLF row separators as generated
    out_path.write_text(text, encoding="utf-8", newline="")
    print(f"Wrote {out_path}")


if __name__ == "__main__":
    main()
