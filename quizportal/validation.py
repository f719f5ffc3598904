"""Input checks for teacher-entered data and CSV import row mapping.

Validators return ``(valid, error)``. Messages are the ones shown to
teachers, prefixed with ``行{n}: `` when a row number is known.
"""
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from quizportal.csv_codec import parse_rows

QUESTION_CSV_HEADER = [
    "question_id",
    "question_text",
    "choice_1",
    "choice_2",
    "choice_3",
    "choice_4",
    "correct_answer",
]
STUDENT_CSV_HEADER = ["email", "year", "class", "number", "name"]

ValidationResult = Tuple[bool, Optional[str]]

_ROW_PREFIX = re.compile(r"行(\d+): ")


class CsvImportError(ValueError):
    """Raised when a CSV file cannot be imported at all (bad header, no data)."""


def _prefix(row_num: Optional[int]) -> str:
    return f"行{row_num}: " if row_num is not None else ""


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def validate_question_input(row: Mapping[str, Any], row_num: Optional[int] = None) -> ValidationResult:
    prefix = _prefix(row_num)
    qid = row.get('question_id')
    if not _is_int(qid) or qid < 1:
        return False, f"{prefix}question_id が不正です（正の整数が必要）"
    answer = row.get('correct_answer')
    if not _is_int(answer) or answer < 1 or answer > 4:
        return False, f"{prefix}correct_answer は1〜4の整数が必要です"
    text_fields = ('question_text', 'choice_1', 'choice_2', 'choice_3', 'choice_4')
    if any(_blank(row.get(k)) for k in text_fields):
        return False, f"{prefix}空のフィールドがあります"
    return True, None


def validate_student_input(row: Mapping[str, Any], row_num: Optional[int] = None) -> ValidationResult:
    prefix = _prefix(row_num)
    if _blank(row.get('email')):
        return False, f"{prefix}メールアドレスが空です"
    year = row.get('year')
    if not _is_int(year) or year < 1 or year > 3:
        return False, f"{prefix}学年は1〜3の整数が必要です"
    class_number = row.get('class_number')
    if not _is_int(class_number) or class_number < 1 or class_number > 10:
        return False, f"{prefix}組は1〜10の整数が必要です"
    number = row.get('number')
    if not _is_int(number) or number < 1:
        return False, f"{prefix}番号は正の整数が必要です"
    if _blank(row.get('name')):
        return False, f"{prefix}氏名が空です"
    return True, None


def validate_grade_input(row: Mapping[str, Any]) -> ValidationResult:
    if _blank(row.get('grade_name')):
        return False, "グレード名が空です"
    for key in ('display_order', 'start_id', 'end_id', 'num_questions', 'pass_score', 'required_consecutive_days'):
        if not _is_int(row.get(key)):
            return False, f"{key} は整数が必要です"
    if row['start_id'] < 1 or row['end_id'] < row['start_id']:
        return False, "問題IDの範囲が不正です"
    if row['num_questions'] < 1:
        return False, "出題数は1以上が必要です"
    if row['num_questions'] > row['end_id'] - row['start_id'] + 1:
        return False, "出題数が問題IDの範囲を超えています"
    if row['pass_score'] < 0 or row['pass_score'] > 100:
        return False, "合格点は0〜100の整数が必要です"
    if row['required_consecutive_days'] < 1:
        return False, "必要連続日数は1以上が必要です"
    return True, None


def validate_subject_input(row: Mapping[str, Any]) -> ValidationResult:
    if _blank(row.get('name')):
        return False, "科目名が空です"
    order = row.get('display_order')
    if not _is_int(order) or order < 0:
        return False, "表示順は0以上の整数が必要です"
    return True, None


def _row_number(error: str) -> int:
    match = _ROW_PREFIX.match(error)
    return int(match.group(1)) if match else 0


def sort_row_errors(errors: List[str]) -> List[str]:
    """Order ``行{n}: `` messages by row number; unnumbered messages first."""
    return sorted(errors, key=_row_number)


def _parse_int(value: str) -> Optional[int]:
    try:
        return int(value.strip())
    except ValueError:
        return None


def _check_header(rows: List[List[str]], expected: List[str]) -> None:
    if len(rows) < 2:
        raise CsvImportError("CSVにデータ行がありません")
    header = [h.strip().lower() for h in rows[0]]
    if len(header) < len(expected) or header[: len(expected)] != expected:
        raise CsvImportError(f"CSVヘッダーが不正です。期待: {','.join(expected)}")


def parse_question_csv(text: str) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Map question CSV text to row dicts; unparseable rows become error messages."""
    csv_rows = parse_rows(text)
    _check_header(csv_rows, QUESTION_CSV_HEADER)

    rows: List[Dict[str, Any]] = []
    errors: List[str] = []
    for line_no, fields in enumerate(csv_rows[1:], start=2):
        if len(fields) < len(QUESTION_CSV_HEADER):
            errors.append(f"行{line_no}: フィールド数が不足しています")
            continue
        question_id = _parse_int(fields[0])
        correct_answer = _parse_int(fields[6])
        if question_id is None or correct_answer is None:
            errors.append(f"行{line_no}: 数値の解析に失敗しました")
            continue
        rows.append({
            'row_num': line_no,
            'question_id': question_id,
            'question_text': fields[1].strip(),
            'choice_1': fields[2].strip(),
            'choice_2': fields[3].strip(),
            'choice_3': fields[4].strip(),
            'choice_4': fields[5].strip(),
            'correct_answer': correct_answer,
        })
    return rows, errors


def parse_student_csv(text: str) -> Tuple[List[Dict[str, Any]], List[str]]:
    csv_rows = parse_rows(text)
    _check_header(csv_rows, STUDENT_CSV_HEADER)

    rows: List[Dict[str, Any]] = []
    errors: List[str] = []
    for line_no, fields in enumerate(csv_rows[1:], start=2):
        if len(fields) < len(STUDENT_CSV_HEADER):
            errors.append(f"行{line_no}: フィールド数が不足しています")
            continue
        year = _parse_int(fields[1])
        class_number = _parse_int(fields[2])
        number = _parse_int(fields[3])
        if year is None or class_number is None or number is None:
            errors.append(f"行{line_no}: 数値の解析に失敗しました")
            continue
        rows.append({
            'row_num': line_no,
            'email': fields[0].strip(),
            'year': year,
            'class_number': class_number,
            'number': number,
            'name': fields[4].strip(),
        })
    return rows, errors
