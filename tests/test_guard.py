"""
MovieDB unit tests for the optimistic concurrency guard
"""

import datetime
import unittest as _unittest
from typing import Type

from moviedb_core import guard


guard_suite = _unittest.TestSuite()


def _tested(cls: Type):
    global guard_suite
    for fixture in filter(lambda f: f.startswith("test_"), dir(cls)):
        guard_suite.addTest(cls(fixture))
    return cls


T0 = datetime.datetime(2016, 1, 6, 6, 13, 9, 123456, tzinfo=datetime.timezone.utc)


def _state(last_modified: datetime.datetime = T0, **fields) -> guard.ResourceState:
    return guard.ResourceState(
        kind="Movie",
        fields=fields or {"id": "rocky27", "title": "Rocky XXVII", "roles": []},
        last_modified=last_modified
    )


@_tested
class FingerprintTests(_unittest.TestCase):
    def test_same_state_same_fingerprint(self):
        self.assertEqual(guard.fingerprint_of(_state()), guard.fingerprint_of(_state()))
        self.assertEqual(
            guard.fingerprint_of(_state(title="foo", id="bar")),
            guard.fingerprint_of(_state(id="bar", title="foo"))
        )

    def test_different_states_different_tokens(self):
        tokens = {
            guard.fingerprint_of(_state()).opaque_token,
            guard.fingerprint_of(_state(title="Rocky")).opaque_token,
            guard.fingerprint_of(_state(T0 + datetime.timedelta(microseconds=1))).opaque_token,
            guard.fingerprint_of(guard.ResourceState("Actor", _state().fields, T0)).opaque_token
        }
        self.assertEqual(4, len(tokens))

    def test_sub_second_precision_kept(self):
        fingerprint = guard.fingerprint_of(_state())
        self.assertEqual(T0, fingerprint.last_modified)
        self.assertEqual(123456, fingerprint.last_modified.microsecond)

    def test_naive_timestamps_are_utc(self):
        naive = T0.replace(tzinfo=None)
        self.assertEqual(guard.fingerprint_of(_state()), guard.fingerprint_of(_state(naive)))

    def test_headers(self):
        fingerprint = guard.fingerprint_of(_state())
        self.assertEqual("Wed, 06 Jan 2016 06:13:09 GMT", fingerprint.http_date)
        self.assertEqual(f'"{fingerprint.opaque_token}"', fingerprint.etag)
        self.assertEqual({"ETag": fingerprint.etag, "Last-Modified": fingerprint.http_date}, fingerprint.headers)


@_tested
class HTTPDateTests(_unittest.TestCase):
    def test_format(self):
        self.assertEqual("Wed, 06 Jan 2016 06:13:09 GMT", guard.format_http_date(T0))
        self.assertEqual("Wed, 06 Jan 2016 06:13:09 GMT", guard.format_http_date(T0.replace(tzinfo=None)))
        cet = datetime.timezone(datetime.timedelta(hours=1))
        self.assertEqual("Wed, 06 Jan 2016 06:13:09 GMT", guard.format_http_date(T0.astimezone(cet)))

    def test_parse(self):
        parsed = guard.parse_http_date("Wed, 06 Jan 2016 06:13:09 GMT")
        self.assertEqual(T0.replace(microsecond=0), parsed)
        self.assertEqual(datetime.timedelta(0), parsed.utcoffset())
        self.assertEqual(T0.replace(microsecond=0), guard.parse_http_date("Wed, 06 Jan 2016 07:13:09 +0100"))
        self.assertEqual(
            guard.format_http_date(T0),
            guard.format_http_date(guard.parse_http_date(guard.format_http_date(T0)))
        )

    def test_parse_malformed(self):
        for value in ["not-a-date", "", "2016-01-06T06:13:09Z", "Wed, 32 Foo 2016 06:13:09 GMT"]:
            with self.assertRaises(guard.MalformedCondition):
                guard.parse_http_date(value)
        with self.assertRaises(ValueError):
            guard.parse_http_date("not-a-date")


@_tested
class EvaluationTests(_unittest.TestCase):
    fingerprint: guard.ResourceFingerprint

    def setUp(self) -> None:
        self.fingerprint = guard.fingerprint_of(_state())

    def _evaluate(self, **kwargs) -> guard.Decision:
        return guard.evaluate(guard.ConditionalRequest(**kwargs), self.fingerprint)

    def test_unconditional_request_proceeds(self):
        decision = self._evaluate()
        self.assertEqual(guard.Outcome.PROCEED, decision.outcome)
        self.assertTrue(decision.proceed)
        self.assertEqual(self.fingerprint, decision.fingerprint)

    def test_equal_timestamp_proceeds(self):
        self.assertTrue(self._evaluate(if_unmodified_since=self.fingerprint.http_date).proceed)
        self.assertTrue(self._evaluate(if_unmodified_since=T0).proceed)

    def test_later_timestamp_proceeds(self):
        self.assertTrue(self._evaluate(if_unmodified_since="Wed, 06 Jan 2016 06:13:10 GMT").proceed)
        self.assertTrue(self._evaluate(if_unmodified_since="Thu, 07 Jan 2016 06:13:09 GMT").proceed)
        self.assertTrue(self._evaluate(if_unmodified_since=T0 + datetime.timedelta(microseconds=1)).proceed)

    def test_earlier_timestamp_conflicts(self):
        for value in [
            "Wed, 06 Jan 2016 06:13:08 GMT",
            "Tue, 05 Jan 2016 06:13:09 GMT",
            T0 - datetime.timedelta(microseconds=1)
        ]:
            decision = self._evaluate(if_unmodified_since=value)
            self.assertEqual(guard.Outcome.CONFLICT, decision.outcome)
            self.assertFalse(decision.proceed)
            self.assertEqual(self.fingerprint, decision.fingerprint)

    def test_header_values_compared_at_second_precision(self):
        self.assertTrue(self._evaluate(if_unmodified_since="Wed, 06 Jan 2016 06:13:09 GMT").proceed)
        self.assertFalse(self._evaluate(if_unmodified_since=T0.replace(microsecond=0)).proceed)

    def test_malformed_timestamp_raises(self):
        for value in ["not-a-date", "yesterday", "1452060789"]:
            with self.assertRaises(guard.MalformedCondition) as ctx:
                self._evaluate(if_unmodified_since=value)
            self.assertEqual("If-Unmodified-Since", ctx.exception.header)
            self.assertEqual(value, ctx.exception.value)

    def test_if_match(self):
        etag = self.fingerprint.etag
        self.assertTrue(self._evaluate(if_match=etag).proceed)
        self.assertTrue(self._evaluate(if_match="*").proceed)
        self.assertTrue(self._evaluate(if_match=f'"foo", {etag}').proceed)
        self.assertFalse(self._evaluate(if_match='"foo"').proceed)
        self.assertFalse(self._evaluate(if_match=f"W/{etag}").proceed)

    def test_timestamp_checked_before_entity_tag(self):
        decision = self._evaluate(if_unmodified_since="Tue, 05 Jan 2016 06:13:09 GMT", if_match="*")
        self.assertEqual(guard.Outcome.CONFLICT, decision.outcome)
        decision = self._evaluate(if_unmodified_since=self.fingerprint.http_date, if_match='"foo"')
        self.assertEqual(guard.Outcome.CONFLICT, decision.outcome)

    def test_decision_depends_on_inputs_only(self):
        request = guard.ConditionalRequest(if_unmodified_since="Wed, 06 Jan 2016 06:13:08 GMT")
        outcomes = {guard.evaluate(request, self.fingerprint).outcome for _ in range(8)}
        self.assertEqual({guard.Outcome.CONFLICT}, outcomes)

    def test_from_headers(self):
        request = guard.ConditionalRequest.from_headers({
            "If-Unmodified-Since": "Wed, 06 Jan 2016 06:13:09 GMT",
            "If-None-Match": '"foo"'
        })
        self.assertEqual("Wed, 06 Jan 2016 06:13:09 GMT", request.if_unmodified_since)
        self.assertEqual('"foo"', request.if_none_match)
        self.assertIsNone(request.if_match)
        self.assertIsNone(request.if_modified_since)
        self.assertTrue(request.is_conditional_write)
        self.assertFalse(guard.ConditionalRequest.from_headers({"If-Match": ""}).is_conditional_write)


@_tested
class FreshnessTests(_unittest.TestCase):
    fingerprint: guard.ResourceFingerprint

    def setUp(self) -> None:
        self.fingerprint = guard.fingerprint_of(_state())

    def _is_fresh(self, **kwargs) -> bool:
        return guard.is_fresh(guard.ConditionalRequest(**kwargs), self.fingerprint)

    def test_entity_tags(self):
        self.assertFalse(self._is_fresh())
        self.assertTrue(self._is_fresh(if_none_match=self.fingerprint.etag))
        self.assertTrue(self._is_fresh(if_none_match=f"W/{self.fingerprint.etag}"))
        self.assertTrue(self._is_fresh(if_none_match="*"))
        self.assertFalse(self._is_fresh(if_none_match='"foo", "bar"'))

    def test_modification_timestamps(self):
        self.assertTrue(self._is_fresh(if_modified_since=self.fingerprint.http_date))
        self.assertTrue(self._is_fresh(if_modified_since="Thu, 07 Jan 2016 06:13:09 GMT"))
        self.assertFalse(self._is_fresh(if_modified_since="Wed, 06 Jan 2016 06:13:08 GMT"))

    def test_invalid_modification_timestamp_ignored(self):
        self.assertFalse(self._is_fresh(if_modified_since="not-a-date"))

    def test_entity_tags_take_precedence(self):
        self.assertFalse(self._is_fresh(if_none_match='"foo"', if_modified_since=self.fingerprint.http_date))


if __name__ == '__main__':
    _unittest.main()
