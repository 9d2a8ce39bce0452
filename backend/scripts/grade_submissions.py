"""CLI script to grade learner submissions against a question bank file.
Usage: python scripts/grade_submissions.py QUESTIONS RESPONSES [--persist] [--lenient-edits N]

QUESTIONS is a .json or .csv question bank, RESPONSES is a JSON file with
either one attempt (a list of responses or a `{questionId: answer}` map)
or several attempts keyed by submission id under `"submissions"`.
"""
import sys
import json
import logging
import argparse
import pathlib
# Ensure `backend/` is on sys.path so `quizeval` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from quizeval.config import settings
from quizeval.database import create_db_and_tables, engine
from quizeval.services import GradingService
from quizeval.utils.parsers import parse_file_to_questions
from quizeval.validator import validate_question


def load_questions(path: pathlib.Path):
    """Parse the bank and drop questions that fail validation."""
    questions = []
    for idx, item in enumerate(parse_file_to_questions(path.read_bytes(), path.name)):
        result = validate_question(item)
        if not result.is_valid:
            issues = '; '.join(f'{e.field}: {e.message}' for e in result.errors)
            print(f'Skipping question {idx}: {issues}')
            continue
        questions.append(item)
    return questions


def main(questions_path: str, responses_path: str, persist: bool = False, lenient_edits=None):
    questions = load_questions(pathlib.Path(questions_path))
    if not questions:
        print('No valid questions to grade against')
        return 1
    data = json.loads(pathlib.Path(responses_path).read_text(encoding='utf-8'))
    policy = settings.grading_policy()
    if lenient_edits is not None:
        policy = policy.model_copy(update={'lenient_max_edits': lenient_edits})

    if persist:
        create_db_and_tables()
    with Session(engine) as session:
        svc = GradingService(session if persist else None, policy=policy)
        if isinstance(data, dict) and 'submissions' in data:
            results = svc.grade_cohort(questions, data['submissions'])
        else:
            result = svc.grade_submission(questions, data)
            results = {result.submission_id: result}
    for sid, result in results.items():
        print(f'{sid}: {result.total_score:g}/{result.max_score:g} ({result.status.value})')
    summary = {sid: r.model_dump(mode='json', by_alias=True) for sid, r in results.items()}
    print(json.dumps(summary, indent=2))
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('questions', help='Question bank file (.json or .csv)')
    parser.add_argument('responses', help='Responses JSON file')
    parser.add_argument('--persist', action='store_true', help='Store results in DATABASE_URL')
    parser.add_argument('--lenient-edits', type=int, help='Override GRADING_LENIENT_MAX_EDITS')
    args = parser.parse_args()
    logging.basicConfig(level=settings.LOG_LEVEL, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    sys.exit(main(args.questions, args.responses, persist=args.persist, lenient_edits=args.lenient_edits))
