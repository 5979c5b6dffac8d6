"""
MovieDB core unit tests
"""

import unittest
from .test_api import APITests
from .test_guard import EvaluationTests, FingerprintTests, FreshnessTests, HTTPDateTests
from .test_negotiation import ProjectionTests, SelectionTests
from .test_persistence import CascadeTests, ModificationTimestampTests, WriteOutcomeTests


TEST_CLASSES = [
    APITests,
    CascadeTests,
    EvaluationTests,
    FingerprintTests,
    FreshnessTests,
    HTTPDateTests,
    ModificationTimestampTests,
    ProjectionTests,
    SelectionTests,
    WriteOutcomeTests,
]


def get_suite() -> unittest.TestSuite:
    suite = unittest.TestSuite()
    for cls in TEST_CLASSES:
        for fixture in filter(lambda f: f.startswith("test_"), dir(cls)):
            suite.addTest(cls(fixture))
    return suite
