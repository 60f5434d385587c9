import unittest

from mirror_db import MirrorTestCase, RecordingFetch, entry_row, issue_record


async def _no_report(date_range):
    raise AssertionError("report should not be fetched")


class GroupByKeyTests(unittest.TestCase):
    def test_groups_in_first_seen_order(self):
        from types import SimpleNamespace

        from timelink.services.reconciler import group_by_key

        rows = [SimpleNamespace(k="B"), SimpleNamespace(k="A"), SimpleNamespace(k="B")]
        grouped = group_by_key(rows, "k")
        self.assertEqual(list(grouped), ["B", "A"])
        self.assertEqual(len(grouped["B"]), 2)


class IssueLinkerTests(MirrorTestCase):
    async def test_resolved_group_is_linked_and_unresolved_group_is_flagged(self):
        from timelink.services.reconciler import Reconciler

        await self.store.insert_entries(
            [entry_row(1, "AB-1"), entry_row(2, "AB-1"), entry_row(3, "AB-2")]
        )
        fetch = RecordingFetch(records={"AB-1": issue_record(1, "AB-1")})
        reconciler = Reconciler(self.store, _no_report, fetch, batch_size=10)

        stats = await reconciler.link_issues()

        entries = await self.all_entries()
        self.assertEqual([e.issue_id for e in entries], [1, 1, None])
        self.assertEqual([e.bad_issue_key for e in entries], [False, False, True])
        self.assertEqual(stats["keys"], 2)
        self.assertEqual(stats["resolved"], 1)
        self.assertEqual(stats["entries_linked"], 2)
        self.assertEqual(stats["entries_flagged"], 1)
        self.assertIsNotNone(await self.issue("AB-1"))
        self.assertIsNone(await self.issue("AB-2"))

    async def test_every_keyed_entry_ends_linked_or_flagged(self):
        from timelink.services.reconciler import Reconciler

        await self.store.insert_entries(
            [
                entry_row(1, "AB-1"),
                entry_row(2, "AB-2"),
                entry_row(3, "AB-3"),
                entry_row(4, None),
            ]
        )
        fetch = RecordingFetch(
            records={"AB-1": issue_record(11, "AB-1"), "AB-3": issue_record(13, "AB-3")},
            failing={"AB-3"},
        )

        await Reconciler(self.store, _no_report, fetch).link_issues()

        for entry in await self.all_entries():
            if entry.issue_key is None:
                self.assertIsNone(entry.issue_id)
                self.assertFalse(entry.bad_issue_key)
            else:
                self.assertNotEqual(entry.issue_id is not None, entry.bad_issue_key)

    async def test_each_distinct_key_is_fetched_once(self):
        from timelink.services.reconciler import Reconciler

        await self.store.insert_entries([entry_row(n, "AB-1") for n in range(1, 6)])
        fetch = RecordingFetch(records={"AB-1": issue_record(1, "AB-1")})

        await Reconciler(self.store, _no_report, fetch).link_issues()

        self.assertEqual(fetch.started, ["AB-1"])

    async def test_existing_issue_is_not_recreated(self):
        from timelink.services.reconciler import Reconciler

        await self.store.create_issue_if_missing(issue_record(5, "AB-5", summary="Local copy"))
        await self.store.insert_entries([entry_row(1, "AB-5")])
        fetch = RecordingFetch(records={"AB-5": issue_record(5, "AB-5", summary="Remote copy")})

        stats = await Reconciler(self.store, _no_report, fetch).link_issues()

        self.assertEqual(stats["created"], 0)
        self.assertEqual((await self.issue("AB-5")).summary, "Local copy")
        self.assertEqual((await self.all_entries())[0].issue_id, 5)

    async def test_key_mirrored_under_another_id_links_to_the_local_row(self):
        from timelink.services.reconciler import Reconciler

        await self.store.create_issue_if_missing(issue_record(1, "AB-1"))
        await self.store.insert_entries([entry_row(1, "AB-1")])
        fetch = RecordingFetch(records={"AB-1": issue_record(99, "AB-1")})

        stats = await Reconciler(self.store, _no_report, fetch).link_issues()

        self.assertEqual((await self.all_entries())[0].issue_id, 1)
        self.assertEqual([i.id for i in await self.store.list_issues()], [1])
        self.assertEqual(stats["created"], 0)
        self.assertEqual(stats["entries_linked"], 1)

    async def test_linked_and_flagged_entries_are_not_looked_up_again(self):
        from timelink.services.reconciler import Reconciler

        await self.store.insert_entries([entry_row(1, "AB-1"), entry_row(2, "AB-2")])
        first = RecordingFetch(records={"AB-1": issue_record(1, "AB-1")})
        await Reconciler(self.store, _no_report, first).link_issues()

        second = RecordingFetch(records={"AB-1": issue_record(1, "AB-1")})
        stats = await Reconciler(self.store, _no_report, second).link_issues()

        self.assertEqual(second.started, [])
        self.assertEqual(stats["keys"], 0)

    async def test_cleared_flag_makes_entries_eligible_again(self):
        from timelink.services.reconciler import Reconciler

        await self.store.insert_entries([entry_row(1, "AB-2"), entry_row(2, "CD-9")])
        await Reconciler(self.store, _no_report, RecordingFetch()).link_issues()

        cleared = await self.store.clear_bad_issue_keys("AB-2")
        fetch = RecordingFetch(records={"AB-2": issue_record(2, "AB-2")})
        await Reconciler(self.store, _no_report, fetch).link_issues()

        self.assertEqual(cleared, 1)
        self.assertEqual(fetch.started, ["AB-2"])
        entries = await self.all_entries()
        self.assertEqual(entries[0].issue_id, 2)
        self.assertFalse(entries[0].bad_issue_key)
        self.assertTrue(entries[1].bad_issue_key)

    async def test_no_keyed_entries_is_a_no_op(self):
        from timelink.services.reconciler import Reconciler

        await self.store.insert_entries([entry_row(1, None)])
        fetch = RecordingFetch()

        stats = await Reconciler(self.store, _no_report, fetch).link_issues()

        self.assertEqual(stats["keys"], 0)
        self.assertEqual(fetch.started, [])


if __name__ == "__main__":
    unittest.main()
