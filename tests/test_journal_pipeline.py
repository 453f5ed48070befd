# -*- coding: utf-8 -*-

from __future__ import annotations

import unittest
from unittest import mock

import support

from healthlog.journal.errors import InvalidStateError, JournalNotFoundError, OutcomeNotRecordedError
from healthlog.journal.extractor import ExtractionFailed, ExtractionSucceeded
from healthlog.journal.models import ProcessingStatus
from healthlog.journal.pipeline import (
    FAILURE_DECODE,
    FAILURE_INTERNAL,
    FAILURE_TRANSPORT,
    Completed,
    Failed,
    get_processing_status,
    retry_journal,
    submit_journal,
)
from healthlog.journal.storage import (
    create_journal_entry,
    delete_journal_entry,
    get_journal_entry,
    list_journal_entries,
    mark_failed,
    mark_retry,
)
from healthlog.records.storage import list_body_stats, list_lab_tests, list_meals, list_medicines

DAL_CHAWAL_TEXT = "Had dal chawal for lunch and drank 2 liters of water"
DAL_CHAWAL_REPLY = (
    '{"meals": [{"time": "noon", "items": ["dal", "chawal"], "quantity": "1 plate", "calories": 450}],'
    ' "medicines": [], "bodyStats": {"waterIntakeLiters": 2}, "tests": [], "notes": ""}'
)

EXTRACT = "healthlog.journal.pipeline.request_extraction"


def _reply(content: str) -> ExtractionSucceeded:
    return ExtractionSucceeded(content=content)


class TestJournalPipeline(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls._tmp = support.use_temp_database("healthlog-pipeline-")

    @classmethod
    def tearDownClass(cls) -> None:
        support.drop_temp_database(cls._tmp)

    def setUp(self) -> None:
        self.user_id = support.make_user()["id"]

    def _counts(self, journal_id: str) -> dict:
        return {
            "meals": len(list_meals(self.user_id, journal_entry_id=journal_id)),
            "medicines": len(list_medicines(self.user_id, journal_entry_id=journal_id)),
            "body_stats": len(list_body_stats(self.user_id, journal_entry_id=journal_id)),
            "tests": len(list_lab_tests(self.user_id, journal_entry_id=journal_id)),
        }

    def _assert_error_matches_status(self, journal_id: str) -> None:
        entry = get_journal_entry(user_id=self.user_id, journal_id=journal_id)
        assert entry is not None
        if entry.processing_status == ProcessingStatus.failed:
            self.assertTrue(entry.processing_error)
            self.assertFalse(entry.is_processed)
        else:
            self.assertIsNone(entry.processing_error)
        self.assertEqual(entry.is_processed, entry.processing_status == ProcessingStatus.completed)

    def test_dal_chawal_entry_is_completed(self) -> None:
        with mock.patch(EXTRACT, return_value=_reply(DAL_CHAWAL_REPLY)) as extract:
            entry, outcome = submit_journal(user_id=self.user_id, raw_text=f"  {DAL_CHAWAL_TEXT}  ")

        extract.assert_called_once_with(DAL_CHAWAL_TEXT)
        self.assertIsInstance(outcome, Completed)
        assert isinstance(outcome, Completed)
        self.assertEqual(outcome.created.model_dump(), {"meals": 1, "medicines": 0, "body_stats": 1, "tests": 0})
        self.assertEqual(self._counts(entry.id), {"meals": 1, "medicines": 0, "body_stats": 1, "tests": 0})

        stored = get_journal_entry(user_id=self.user_id, journal_id=entry.id)
        assert stored is not None
        self.assertEqual(stored.raw_text, DAL_CHAWAL_TEXT)
        self.assertEqual(stored.processing_status, ProcessingStatus.completed)
        self.assertTrue(stored.is_processed)
        self.assertEqual(stored.ai_response, DAL_CHAWAL_REPLY)
        assert stored.parsed_data is not None
        self.assertEqual(stored.parsed_data.meals[0].items, ["dal", "chawal"])
        self.assertEqual(stored.tags, ["food", "hydration"])
        self.assertEqual(stored.word_count, 11)
        self.assertEqual(stored.reading_time_minutes, 1)
        self._assert_error_matches_status(entry.id)

        stat = list_body_stats(self.user_id, journal_entry_id=entry.id)[0]
        self.assertEqual(stat.water_intake, 2.0)

    def test_explicit_date_is_used_for_records(self) -> None:
        with mock.patch(EXTRACT, return_value=_reply(DAL_CHAWAL_REPLY)):
            entry, _ = submit_journal(user_id=self.user_id, raw_text="dal", date="2024-01-05T00:00:00+00:00")
        self.assertEqual(entry.date, "2024-01-05T00:00:00+00:00")
        meal = list_meals(self.user_id, journal_entry_id=entry.id)[0]
        self.assertEqual(meal.date, "2024-01-05T00:00:00+00:00")

    def test_transport_failure_marks_entry_failed(self) -> None:
        failure = ExtractionFailed(message="AI API call timed out after 60s")
        with mock.patch(EXTRACT, return_value=failure):
            entry, outcome = submit_journal(user_id=self.user_id, raw_text="took my BP pill")

        self.assertIsInstance(outcome, Failed)
        assert isinstance(outcome, Failed)
        self.assertEqual(outcome.kind, FAILURE_TRANSPORT)

        stored = get_journal_entry(user_id=self.user_id, journal_id=entry.id)
        assert stored is not None
        self.assertEqual(stored.processing_status, ProcessingStatus.failed)
        self.assertEqual(stored.processing_error, "AI API call timed out after 60s")
        self.assertIsNone(stored.parsed_data)
        self.assertIsNone(stored.ai_response)
        self.assertEqual(self._counts(entry.id), {"meals": 0, "medicines": 0, "body_stats": 0, "tests": 0})
        self._assert_error_matches_status(entry.id)

    def test_unparseable_reply_keeps_raw_response(self) -> None:
        reply = "Sorry, I can't help with that."
        with mock.patch(EXTRACT, return_value=_reply(reply)):
            entry, outcome = submit_journal(user_id=self.user_id, raw_text="felt tired")

        assert isinstance(outcome, Failed)
        self.assertEqual(outcome.kind, FAILURE_DECODE)
        stored = get_journal_entry(user_id=self.user_id, journal_id=entry.id)
        assert stored is not None
        self.assertEqual(stored.processing_status, ProcessingStatus.failed)
        self.assertEqual(stored.ai_response, reply)
        self.assertIsNone(stored.parsed_data)
        self.assertEqual(self._counts(entry.id), {"meals": 0, "medicines": 0, "body_stats": 0, "tests": 0})

    def test_only_body_stats(self) -> None:
        reply = '{"meals": [], "medicines": [], "bodyStats": {"sleepHours": 7, "mood": "Good"}, "tests": []}'
        with mock.patch(EXTRACT, return_value=_reply(reply)):
            entry, outcome = submit_journal(user_id=self.user_id, raw_text="slept 7 hours, feeling good")

        assert isinstance(outcome, Completed)
        self.assertEqual(outcome.created.body_stats, 1)
        self.assertEqual(self._counts(entry.id), {"meals": 0, "medicines": 0, "body_stats": 1, "tests": 0})
        stat = list_body_stats(self.user_id, journal_entry_id=entry.id)[0]
        assert stat.mood is not None
        self.assertEqual(stat.mood.value, "good")

    def test_rejected_records_still_complete_the_entry(self) -> None:
        reply = (
            '{"meals": [{"time": "brunch", "items": ["kulcha"]}],'
            ' "medicines": [{"name": "Paracetamol", "time": "evening", "dosage": "650mg"}]}'
        )
        with mock.patch(EXTRACT, return_value=_reply(reply)):
            entry, outcome = submit_journal(user_id=self.user_id, raw_text="kulcha and a paracetamol")

        assert isinstance(outcome, Completed)
        self.assertEqual(outcome.created.meals, 0)
        self.assertEqual(outcome.created.medicines, 1)
        stored = get_journal_entry(user_id=self.user_id, journal_id=entry.id)
        assert stored is not None
        self.assertEqual(stored.processing_status, ProcessingStatus.completed)

    def test_crash_during_processing_is_recorded(self) -> None:
        with mock.patch(EXTRACT, return_value=_reply(DAL_CHAWAL_REPLY)), mock.patch(
            "healthlog.journal.pipeline.write_derived_records", side_effect=RuntimeError("disk full")
        ):
            with self.assertLogs("healthlog.journal.pipeline", level="ERROR"):
                entry, outcome = submit_journal(user_id=self.user_id, raw_text="dal chawal")

        assert isinstance(outcome, Failed)
        self.assertEqual(outcome.kind, FAILURE_INTERNAL)
        stored = get_journal_entry(user_id=self.user_id, journal_id=entry.id)
        assert stored is not None
        self.assertEqual(stored.processing_status, ProcessingStatus.failed)
        self.assertIn("disk full", stored.processing_error or "")

    def _in_flight_id(self) -> str:
        (entry,) = list_journal_entries(user_id=self.user_id, status="processing")
        return entry.id

    def test_entry_deleted_while_processing(self) -> None:
        def extract(_text):
            self.assertTrue(delete_journal_entry(user_id=self.user_id, journal_id=self._in_flight_id()))
            return _reply(DAL_CHAWAL_REPLY)

        with mock.patch(EXTRACT, side_effect=extract):
            with self.assertLogs("healthlog.journal.pipeline", level="WARNING"):
                with self.assertRaises(OutcomeNotRecordedError) as ctx:
                    submit_journal(user_id=self.user_id, raw_text="dal chawal")

        self.assertIsInstance(ctx.exception.cause, JournalNotFoundError)
        self.assertIsNone(get_journal_entry(user_id=self.user_id, journal_id=ctx.exception.journal_id))

    def test_entry_status_changed_while_processing(self) -> None:
        def extract(_text):
            mark_failed(user_id=self.user_id, journal_id=self._in_flight_id(), error="cancelled")
            return _reply(DAL_CHAWAL_REPLY)

        with mock.patch(EXTRACT, side_effect=extract):
            with self.assertRaises(OutcomeNotRecordedError) as ctx:
                submit_journal(user_id=self.user_id, raw_text="dal chawal")

        self.assertIsInstance(ctx.exception.cause, InvalidStateError)
        stored = get_journal_entry(user_id=self.user_id, journal_id=ctx.exception.journal_id)
        assert stored is not None
        self.assertEqual(stored.processing_status, ProcessingStatus.failed)
        self.assertEqual(stored.processing_error, "cancelled")

    def test_status_query_does_not_change_the_entry(self) -> None:
        with mock.patch(EXTRACT, return_value=_reply(DAL_CHAWAL_REPLY)):
            entry, _ = submit_journal(user_id=self.user_id, raw_text="dal chawal")

        before = get_journal_entry(user_id=self.user_id, journal_id=entry.id)
        first = get_processing_status(user_id=self.user_id, journal_id=entry.id)
        second = get_processing_status(user_id=self.user_id, journal_id=entry.id)
        after = get_journal_entry(user_id=self.user_id, journal_id=entry.id)

        self.assertEqual(first, second)
        self.assertEqual(first.processing_status, ProcessingStatus.completed)
        self.assertTrue(first.is_processed)
        self.assertEqual(before, after)

    def test_status_of_unknown_entry(self) -> None:
        with self.assertRaises(JournalNotFoundError):
            get_processing_status(user_id=self.user_id, journal_id="missing")

    def test_retry_reprocesses_the_same_entry(self) -> None:
        with mock.patch(EXTRACT, return_value=ExtractionFailed(message="AI API unreachable: refused")):
            entry, _ = submit_journal(user_id=self.user_id, raw_text=DAL_CHAWAL_TEXT)

        seen_during_call = []

        def extract(raw_text: str) -> ExtractionSucceeded:
            seen_during_call.append(get_journal_entry(user_id=self.user_id, journal_id=entry.id))
            return _reply(DAL_CHAWAL_REPLY)

        with mock.patch(EXTRACT, side_effect=extract):
            retried, outcome = retry_journal(user_id=self.user_id, journal_id=entry.id)

        self.assertEqual(retried.id, entry.id)
        self.assertIsInstance(outcome, Completed)

        during = seen_during_call[0]
        assert during is not None
        self.assertEqual(during.processing_status, ProcessingStatus.processing)
        self.assertIsNone(during.processing_error)

        stored = get_journal_entry(user_id=self.user_id, journal_id=entry.id)
        assert stored is not None
        self.assertEqual(stored.processing_status, ProcessingStatus.completed)
        self.assertEqual(stored.created_at, entry.created_at)
        self.assertEqual(len(list_journal_entries(user_id=self.user_id)), 1)
        self.assertEqual(self._counts(entry.id)["meals"], 1)

    def test_retry_that_fails_again_stays_failed(self) -> None:
        with mock.patch(EXTRACT, return_value=ExtractionFailed(message="AI API error (503): busy")):
            entry, _ = submit_journal(user_id=self.user_id, raw_text="walked 3km")
            _, outcome = retry_journal(user_id=self.user_id, journal_id=entry.id)

        assert isinstance(outcome, Failed)
        stored = get_journal_entry(user_id=self.user_id, journal_id=entry.id)
        assert stored is not None
        self.assertEqual(stored.processing_status, ProcessingStatus.failed)
        self.assertEqual(stored.processing_error, "AI API error (503): busy")

    def test_retry_rejected_for_completed_entry(self) -> None:
        with mock.patch(EXTRACT, return_value=_reply(DAL_CHAWAL_REPLY)):
            entry, _ = submit_journal(user_id=self.user_id, raw_text="dal chawal")
        before = get_journal_entry(user_id=self.user_id, journal_id=entry.id)

        with mock.patch(EXTRACT) as extract:
            with self.assertRaises(InvalidStateError):
                retry_journal(user_id=self.user_id, journal_id=entry.id)
        extract.assert_not_called()
        self.assertEqual(get_journal_entry(user_id=self.user_id, journal_id=entry.id), before)

    def test_retry_rejected_while_processing(self) -> None:
        entry = create_journal_entry(user_id=self.user_id, raw_text="still running")
        self.assertEqual(entry.processing_status, ProcessingStatus.processing)
        with self.assertRaises(InvalidStateError):
            retry_journal(user_id=self.user_id, journal_id=entry.id)

    def test_retry_of_unknown_or_foreign_entry(self) -> None:
        with self.assertRaises(JournalNotFoundError):
            retry_journal(user_id=self.user_id, journal_id="missing")

        other = support.make_user()["id"]
        with mock.patch(EXTRACT, return_value=ExtractionFailed(message="down")):
            entry, _ = submit_journal(user_id=other, raw_text="someone else's entry")
        with self.assertRaises(JournalNotFoundError):
            retry_journal(user_id=self.user_id, journal_id=entry.id)

    def test_second_retry_of_same_failure_is_rejected(self) -> None:
        entry = create_journal_entry(user_id=self.user_id, raw_text="race")
        mark_failed(user_id=self.user_id, journal_id=entry.id, error="")

        stored = get_journal_entry(user_id=self.user_id, journal_id=entry.id)
        assert stored is not None
        self.assertEqual(stored.processing_error, "AI API call failed")

        mark_retry(user_id=self.user_id, journal_id=entry.id)
        with self.assertRaises(InvalidStateError):
            mark_retry(user_id=self.user_id, journal_id=entry.id)


if __name__ == "__main__":
    unittest.main()
