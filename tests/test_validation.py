import pytest

from quizportal.validation import (
    CsvImportError,
    parse_question_csv,
    parse_student_csv,
    sort_row_errors,
    validate_grade_input,
    validate_question_input,
    validate_student_input,
    validate_subject_input,
)

QUESTION = {
    'question_id': 1,
    'question_text': '1+1=?',
    'choice_1': '1',
    'choice_2': '2',
    'choice_3': '3',
    'choice_4': '4',
    'correct_answer': 2,
}

GRADE = {
    'grade_name': '10級',
    'display_order': 0,
    'start_id': 1,
    'end_id': 20,
    'num_questions': 10,
    'pass_score': 80,
    'required_consecutive_days': 3,
}


def test_valid_question():
    assert validate_question_input(QUESTION) == (True, None)


def test_question_errors_carry_row_prefix():
    valid, error = validate_question_input({**QUESTION, 'correct_answer': 5}, 4)
    assert not valid
    assert error.startswith('行4: ')
    valid, error = validate_question_input({**QUESTION, 'choice_3': '  '})
    assert not valid and not error.startswith('行')
    assert not validate_question_input({**QUESTION, 'question_id': 0})[0]
    assert not validate_question_input({**QUESTION, 'correct_answer': True})[0]


def test_student_validation():
    row = {'email': 'a@example.com', 'year': 1, 'class_number': 2, 'number': 3, 'name': '山田'}
    assert validate_student_input(row) == (True, None)
    assert not validate_student_input({**row, 'year': 4})[0]
    assert not validate_student_input({**row, 'class_number': 0})[0]
    assert not validate_student_input({**row, 'email': ''})[0]
    assert not validate_student_input({**row, 'name': None})[0]


def test_grade_validation():
    assert validate_grade_input(GRADE) == (True, None)
    assert not validate_grade_input({**GRADE, 'end_id': 0})[0]
    assert not validate_grade_input({**GRADE, 'num_questions': 21})[0]
    assert not validate_grade_input({**GRADE, 'pass_score': 101})[0]
    assert not validate_grade_input({**GRADE, 'required_consecutive_days': 0})[0]
    assert not validate_grade_input({**GRADE, 'grade_name': ' '})[0]


def test_subject_validation():
    assert validate_subject_input({'name': '数学', 'display_order': 0}) == (True, None)
    assert not validate_subject_input({'name': '', 'display_order': 0})[0]
    assert not validate_subject_input({'name': '数学', 'display_order': -1})[0]


def test_parse_question_csv():
    text = (
        'Question_ID,question_text,choice_1,choice_2,choice_3,choice_4,correct_answer\r\n'
        '1,"1+1, really?",1,2,3,4,2\r\n'
        '2,too,few\r\n'
        'x,q,a,b,c,d,1\r\n'
        '3, spaced ,a,b,c,d, 4 \r\n'
    )
    rows, errors = parse_question_csv(text)
    assert [r['question_id'] for r in rows] == [1, 3]
    assert rows[0]['question_text'] == '1+1, really?'
    assert rows[0]['row_num'] == 2
    assert rows[1]['question_text'] == 'spaced'
    assert rows[1]['correct_answer'] == 4
    assert errors == ['行3: フィールド数が不足しています', '行4: 数値の解析に失敗しました']


def test_parse_question_csv_rejects_bad_files():
    with pytest.raises(CsvImportError):
        parse_question_csv('question_id,question_text\n1,x')
    with pytest.raises(CsvImportError):
        parse_question_csv('question_id,question_text,choice_1,choice_2,choice_3,choice_4,correct_answer\n')


def test_parse_student_csv():
    text = 'email,year,class,number,name\na@example.com,1,2,3,山田\nb@example.com,one,2,3,佐藤\n'
    rows, errors = parse_student_csv(text)
    assert rows == [{
        'row_num': 2,
        'email': 'a@example.com',
        'year': 1,
        'class_number': 2,
        'number': 3,
        'name': '山田',
    }]
    assert errors == ['行3: 数値の解析に失敗しました']


def test_sort_row_errors_follows_file_order():
    errors = ['行10: b', '行3: a', 'ヘッダー', '行4: c']
    assert sort_row_errors(errors) == ['ヘッダー', '行3: a', '行4: c', '行10: b']
