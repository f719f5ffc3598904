import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from quizportal.csv_codec import decode_csv_bytes
from quizportal.logging_config import setup_logging
from quizportal.questions import import_questions_csv
from quizportal.students import import_students_csv
from quizportal.validation import CsvImportError


def main():
    parser = argparse.ArgumentParser(description="Bulk import questions or students from a CSV file.")
    parser.add_argument("type", choices=["questions", "students"])
    parser.add_argument("csv_file", type=Path)
    parser.add_argument("--subject-id", type=int, help="Required for questions.")
    args = parser.parse_args()

    setup_logging()

    text = decode_csv_bytes(args.csv_file.read_bytes())
    try:
        if args.type == "questions":
            if args.subject_id is None:
                raise SystemExit("--subject-id is required for question import")
            result = import_questions_csv(args.subject_id, text)
        else:
            result = import_students_csv(text)
    except CsvImportError as e:
        raise SystemExit(str(e))

    print(f"inserted={result['inserted']} updated={result['updated']} errors={len(result['errors'])}")
    for err in result['errors']:
        print(f"  {err}")
    if result['errors']:
        sys.exit(1)


if __name__ == "__main__":
    main()
