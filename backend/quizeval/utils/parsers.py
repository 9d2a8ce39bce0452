"""File parsing utilities that convert question banks and submissions
into the canonical document shapes.

Supported question bank formats: JSON (a list of question objects, or
`{"questions": [...]}`) and CSV. `normalize_question` maps the spellings
used by stored documents and hand-written banks onto the camelCase
question schema; it does not validate, the validator does.
"""

import csv
import io
import json
import string
from typing import Any, Dict, List, Optional

TYPE_ALIASES = {
    "MULTIPLE_CHOICE": "MCQ",
    "MULTIPLE_SELECT": "MMCQ",
    "FILL_IN_BLANK": "FILL_THE_BLANK",
    "FILL_IN_BLANKS": "FILL_THE_BLANK",
    "FILL_THE_BLANKS": "FILL_THE_BLANK",
    "TRUEFALSE": "TRUE_FALSE",
    "MATCH_THE_FOLLOWING": "MATCHING",
}

_COMMON_KEYS = (
    ("id", ("id", "_id")),
    ("explanation", ("explanation", "solutionExplanation")),
    ("difficulty", ("difficulty",)),
    ("bloomTaxonomyLevel", ("bloomTaxonomyLevel", "bloom_taxonomy_level", "bloomsLevel")),
    ("courseOutcome", ("courseOutcome", "course_outcome")),
    ("topics", ("topics",)),
)


def parse_file_to_questions(file_bytes: bytes, filename: str) -> List[Dict]:
    """Dispatch to the appropriate parser based on file extension."""
    name = filename.lower()
    if name.endswith('.json'):
        return parse_json(file_bytes)
    if name.endswith('.csv'):
        return parse_csv(file_bytes)
    raise ValueError('Unsupported file type')


def parse_json(b: bytes) -> List[Dict]:
    """Parse a JSON array of question objects and normalize them."""
    data = json.loads(b.decode('utf-8'))
    if isinstance(data, dict):
        data = data.get('questions', [])
    return [normalize_question(item) for item in data]


def parse_csv(b: bytes) -> List[Dict]:
    """Parse a CSV question bank.

    Columns: `type`, `question`, `marks`, `negative_marks`, `options`
    (pipe separated), `correct`, `explanation`, `difficulty`.

    `correct` holds, per type: the correct option text(s) or letter(s)
    separated by `|` (MCQ/MMCQ), `true`/`false` (TRUE_FALSE), or one
    group per blank separated by `|` with alternatives separated by `/`
    (FILL_THE_BLANK, weights split evenly across blanks).
    """
    out = []
    reader = csv.DictReader(io.StringIO(b.decode('utf-8')))
    for row in reader:
        qtype = _canonical_type(row.get('type') or row.get('question_type') or 'MCQ')
        item = {
            'type': qtype,
            'questionText': str(row.get('question') or row.get('question_text') or ''),
            'explanation': row.get('explanation') or '',
            'marks': _coerce_float(row.get('marks'), 1.0),
            'negativeMarks': _coerce_float(row.get('negative_marks') or row.get('negativeMarks'), 0.0),
        }
        if row.get('difficulty'):
            item['difficulty'] = row['difficulty'].strip().upper()
        correct = [p.strip() for p in (row.get('correct') or '').split('|') if p.strip()]
        if qtype in ('MCQ', 'MMCQ'):
            texts = [p.strip() for p in (row.get('options') or '').split('|') if p.strip()]
            options = [{'id': _letter(i), 'text': t} for i, t in enumerate(texts)]
            item['options'] = options
            item['correctOptions'] = [o['id'] for o in options if o['text'] in correct or o['id'] in correct]
        elif qtype == 'TRUE_FALSE':
            item['trueFalseAnswer'] = _coerce_bool(correct[0] if correct else None)
        elif qtype == 'FILL_THE_BLANK':
            blanks = [{'answers': [a.strip() for a in group.split('/') if a.strip()]} for group in correct]
            item['blanks'] = _even_weights(blanks, item['marks'])
        out.append(normalize_question(item))
    return out


def normalize_question(item: dict) -> dict:
    """Map alternative keys onto the canonical camelCase question shape."""
    qtype = _canonical_type(item.get('type') or item.get('questionType') or item.get('question_type') or '')
    out: Dict[str, Any] = {'type': qtype}
    text = _first(item, 'questionText', 'question_text', 'question', 'prompt')
    out['questionText'] = text if isinstance(text, str) else ''
    for target, sources in _COMMON_KEYS:
        value = _first(item, *sources)
        if value is not None:
            out[target] = value
    marks = _first(item, 'marks', 'mark')
    if marks is not None:
        out['marks'] = marks
    negative = _first(item, 'negativeMarks', 'negative_marks')
    if negative is not None:
        out['negativeMarks'] = negative

    if qtype in ('MCQ', 'MMCQ'):
        out.update(_normalize_choice(item))
    elif qtype == 'TRUE_FALSE':
        answer = _first(item, 'trueFalseAnswer', 'true_false_answer', 'correct', 'answer')
        if isinstance(item.get('solution'), dict) and answer is None:
            answer = _first(item['solution'], 'trueFalseAnswer', 'correctAnswer')
        out['trueFalseAnswer'] = _coerce_bool(answer)
    elif qtype == 'FILL_THE_BLANK':
        out['blankConfig'] = _normalize_blanks(item)
    elif qtype == 'MATCHING':
        out['options'] = _normalize_matching(item)
    elif qtype == 'DESCRIPTIVE':
        config = _first(item, 'descriptiveConfig', 'descriptive_config')
        if config is not None:
            out['descriptiveConfig'] = config
    elif qtype == 'CODING':
        for key in ('codingConfig', 'testCases'):
            if key in item:
                out[key] = item[key]
    elif qtype == 'FILE_UPLOAD':
        for key in ('attachedFiles', 'fileUploadConfig'):
            if key in item:
                out[key] = item[key]
    return out


def normalize_submission(data: Any) -> List[Dict]:
    """Normalize a submission into a list of `{questionId, answer}` dicts.

    Accepts a list of response objects, or the stored mapping
    `{questionId: {"studentAnswer": ...}}`.
    """
    if isinstance(data, dict) and 'responses' in data:
        data = data['responses']
    out = []
    if isinstance(data, dict):
        for question_id, value in data.items():
            answer = value.get('studentAnswer') if isinstance(value, dict) and 'studentAnswer' in value else value
            out.append({'questionId': str(question_id), 'answer': answer})
        return out
    for item in data or []:
        question_id = _first(item, 'questionId', 'question_id')
        answer = _first(item, 'answer', 'studentAnswer', 'response')
        if isinstance(answer, dict) and 'studentAnswer' in answer:
            answer = answer['studentAnswer']
        out.append({'questionId': str(question_id), 'answer': answer})
    return out


def _normalize_choice(item: dict) -> dict:
    data = item.get('questionData') if isinstance(item.get('questionData'), dict) else {}
    raw_options = _first(item, 'options') or data.get('options') or []
    options = []
    flagged = []
    for i, opt in enumerate(raw_options):
        if isinstance(opt, str):
            options.append({'id': _letter(i), 'text': opt})
            continue
        oid = _first(opt, 'id', 'optionId') or _letter(i)
        options.append({'id': str(oid), 'text': _first(opt, 'text', 'optionText', 'option') or ''})
        if opt.get('isCorrect') or opt.get('is_correct'):
            flagged.append(str(oid))

    solution = item.get('solution') if isinstance(item.get('solution'), dict) else {}
    correct = _first(item, 'correctOptions', 'correct_options', 'correct')
    if correct is None:
        correct = solution.get('correctOptions')
    if correct is None:
        correct = flagged
    if isinstance(correct, (str, int)):
        correct = [correct]
    ids = []
    for entry in correct:
        if isinstance(entry, dict):
            if entry.get('isCorrect', True):
                ids.append(str(entry.get('id')))
        else:
            ids.append(str(entry))
    return {'options': options, 'correctOptions': ids}


def _normalize_blanks(item: dict) -> dict:
    config = _first(item, 'blankConfig', 'blank_config')
    if isinstance(config, dict):
        return config
    blanks = item.get('blanks') or []
    return {
        'blankCount': len(blanks),
        'acceptableAnswers': {
            i: {'answers': list(b.get('answers') or []), 'type': str(b.get('type') or 'TEXT').upper()}
            for i, b in enumerate(blanks)
        },
        'blankWeights': {i: b.get('weight', 1) for i, b in enumerate(blanks)},
        'evaluationType': str(_first(item, 'evaluationType', 'evaluation_type', 'mode') or 'NORMAL').upper(),
    }


def _normalize_matching(item: dict) -> list:
    if 'options' in item:
        return item['options']
    options = []
    for i, left in enumerate(item.get('leftItems') or []):
        options.append({
            'id': left.get('id'),
            'text': left.get('text', ''),
            'isLeft': True,
            'orderIndex': left.get('orderIndex', i),
            'matchPairIds': list(_first(left, 'matchPairIds', 'matches') or []),
        })
    for i, right in enumerate(item.get('rightItems') or []):
        options.append({
            'id': right.get('id'),
            'text': right.get('text', ''),
            'isLeft': False,
            'orderIndex': right.get('orderIndex', i),
        })
    return options


def _even_weights(blanks: List[dict], marks: float) -> List[dict]:
    if not blanks:
        return blanks
    share = round(marks / len(blanks), 4)
    for b in blanks:
        b['weight'] = share
    # put the rounding remainder on the last blank so the total matches marks
    blanks[-1]['weight'] = round(marks - share * (len(blanks) - 1), 4)
    return blanks


def _canonical_type(value: str) -> str:
    value = getattr(value, 'value', value)
    key = str(value).strip().upper().replace('-', '_').replace(' ', '_')
    return TYPE_ALIASES.get(key, key)


def _first(item: dict, *keys):
    for k in keys:
        if k in item and item[k] is not None:
            return item[k]
    return None


def _letter(index: int) -> str:
    letters = string.ascii_uppercase
    if index < len(letters):
        return letters[index]
    return f"O{index + 1}"


def _coerce_bool(val) -> Optional[bool]:
    if isinstance(val, bool):
        return val
    if val is None:
        return None
    lowered = str(val).strip().lower()
    if lowered in ('true', 't', 'yes', '1'):
        return True
    if lowered in ('false', 'f', 'no', '0'):
        return False
    return None


def _coerce_float(val, default: float) -> float:
    try:
        return float(val) if val is not None and str(val).strip() != '' else default
    except ValueError:
        return default
