#!/usr/bin/env python3
"""
Run all kdtutor tests.
"""

import sys
import os

import pytest

TESTS_DIR = os.path.dirname(os.path.abspath(__file__))

# Add project root to path
sys.path.insert(0, os.path.dirname(TESTS_DIR))


def main():
    print("=" * 70)
    print("KDTUTOR - FULL TEST SUITE")
    print("=" * 70)

    result = pytest.main([TESTS_DIR, '-q'] + sys.argv[1:])

    print("\n" + "=" * 70)
    if result == 0:
        print("All test suites passed!")
    else:
        print("Some tests failed.")
    return int(result)


if __name__ == "__main__":
    sys.exit(main())
