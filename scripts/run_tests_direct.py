import sys
import traceback
from pathlib import Path

# ensure repo root on path
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from tests.test_grading import (  # noqa: E402
    test_multiple_choice_multi_answer,
    test_true_false_variants,
    test_enumeration_partial_credit,
)


def run_test(func):
    try:
        func()
        print(f"{func.__name__}: PASS")
    except AssertionError as e:
        print(f"{func.__name__}: FAIL - AssertionError: {e}")
        traceback.print_exc()
    except Exception as e:
        print(f"{func.__name__}: ERROR - {e}")
        traceback.print_exc()


if __name__ == '__main__':
    run_test(test_multiple_choice_multi_answer)
    run_test(test_true_false_variants)
    run_test(test_enumeration_partial_credit)
