import io
import json
import os
import tempfile
import unittest
import zipfile

from caseformat import ArchiveCorrupt, DecodeFailed, ValidationFailed, Case, DCLine
from caseformat.io.archive import (
    pack_case, unpack_case, read_zip, write_zip, read_dir, write_dir, make_metadata,
)
from tests.cases import three_bus_case


def entries_of(data):
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return {name: archive.read(name) for name in archive.namelist()}


def repack(data, **changes):
    """Rebuild an archive with some entries replaced (or removed when set to None)."""
    entries = entries_of(data)
    for name, content in changes.items():
        name = name.replace("_json", ".json")
        if content is None:
            entries.pop(name, None)
        else:
            entries[name] = content
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def set_member_flag(data, bit):
    """Set a general purpose flag bit on the first central directory record (metadata.json)."""
    data = bytearray(data)
    end = data.rfind(b"PK\x05\x06")
    directory = int.from_bytes(data[end + 16:end + 20], "little")
    data[directory + 8] |= bit
    return bytes(data)


def with_metadata(data, **updates):
    metadata = json.loads(entries_of(data)["metadata.json"])
    metadata.update(updates)
    return repack(data, metadata_json=json.dumps(metadata))


class TestArchiveRoundTrip(unittest.TestCase):

    def test_unpack_pack(self):
        case = three_bus_case()
        decoded = unpack_case(pack_case(case))
        self.assertEqual(decoded, case)
        self.assertEqual(decoded.report.errors, [])

    def test_entries_and_metadata(self):
        case = three_bus_case()
        entries = entries_of(pack_case(case, readme="IEEE style test case"))
        self.assertEqual(set(entries), {"metadata.json", "bus", "gen", "branch", "gencost", "README"})
        metadata = json.loads(entries["metadata.json"])
        self.assertEqual(metadata, {
            "version": "1.0.0",
            "name": "case3",
            "base_power": 100.0,
            "created_at": "2025-01-01T00:00:00+00:00",
            "tables": {"bus": 3, "gen": 1, "branch": 2, "gencost": 1},
        })

    def test_readme_is_ignored_on_read(self):
        case = three_bus_case()
        self.assertEqual(unpack_case(pack_case(case, readme="notes")), case)

    def test_without_timestamp(self):
        case = Case(name="empty")
        decoded = unpack_case(pack_case(case))
        self.assertIsNone(decoded.created_at)
        self.assertEqual(decoded, case)

    def test_read_logs_progress(self):
        with self.assertLogs("caseformat", level="INFO") as logs:
            unpack_case(pack_case(three_bus_case()))
        self.assertTrue(any("> Read archive ... ok." in line for line in logs.output))

    def test_dc_lines(self):
        case = three_bus_case()
        case.add(DCLine(1, 3, pf=10.0, pmin=0.0, pmax=50.0, loss1=0.01))
        data = pack_case(case)
        entries = entries_of(data)
        self.assertIn("dcline", entries)
        self.assertEqual(json.loads(entries["metadata.json"])["tables"]["dcline"], 1)
        decoded = unpack_case(data)
        self.assertEqual(decoded.dclines, case.dclines)
        self.assertEqual(decoded, case)

    def test_zip_file(self):
        case = three_bus_case()
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "case3.zip")
            write_zip(path, case)
            self.assertEqual(read_zip(path), case)

    def test_directory(self):
        case = three_bus_case()
        with tempfile.TemporaryDirectory() as tmp:
            case.to_csv(tmp)
            self.assertEqual(
                sorted(os.listdir(tmp)),
                ["branch.csv", "bus.csv", "gen.csv", "gencost.csv", "metadata.json"],
            )
            self.assertEqual(Case.from_csv(tmp), case)
            self.assertEqual(read_dir(tmp), case)

    def test_directory_without_metadata(self):
        with tempfile.TemporaryDirectory() as tmp:
            write_dir(three_bus_case(), tmp)
            os.remove(os.path.join(tmp, "metadata.json"))
            with self.assertRaises(ArchiveCorrupt):
                read_dir(tmp)


class TestArchiveCorrupt(unittest.TestCase):

    def setUp(self):
        self.data = pack_case(three_bus_case())

    def test_not_a_zip(self):
        with self.assertRaises(ArchiveCorrupt):
            unpack_case(b"definitely not a zip file")

    def test_missing_metadata(self):
        with self.assertRaises(ArchiveCorrupt):
            unpack_case(repack(self.data, metadata_json=None))

    def test_unreadable_metadata(self):
        with self.assertRaises(ArchiveCorrupt):
            unpack_case(repack(self.data, metadata_json="{not json"))

    def test_metadata_key_types(self):
        for updates in ({"base_power": "100"}, {"tables": [3, 1, 2, 1]}, {"version": 1}):
            with self.subTest(updates=updates), self.assertRaises(ArchiveCorrupt):
                unpack_case(with_metadata(self.data, **updates))

    def test_unsupported_major_version(self):
        with self.assertRaisesRegex(ArchiveCorrupt, "unsupported format version"):
            unpack_case(with_metadata(self.data, version="2.0.0"))

    def test_newer_minor_version_is_read(self):
        case = unpack_case(with_metadata(self.data, version="1.3.0"))
        self.assertEqual(case.version, (1, 3, 0))

    def test_manifest_lists_known_tables(self):
        tables = {"bus": 3, "gen": 1, "branch": 2, "gencost": 1, "areas": 0}
        with self.assertRaisesRegex(ArchiveCorrupt, "unknown tables"):
            unpack_case(with_metadata(self.data, tables=tables))

    def test_manifest_lists_required_tables(self):
        tables = {"bus": 3, "gen": 1, "branch": 2}
        with self.assertRaisesRegex(ArchiveCorrupt, "missing the tables"):
            unpack_case(with_metadata(self.data, tables=tables))

    def test_listed_dcline_needs_an_entry(self):
        tables = {"bus": 3, "gen": 1, "branch": 2, "gencost": 1, "dcline": 0}
        with self.assertRaisesRegex(ArchiveCorrupt, "dcline"):
            unpack_case(with_metadata(self.data, tables=tables))

    def test_truncated_archive(self):
        for size in (len(self.data) // 2, 100):
            with self.subTest(size=size), self.assertRaises(ArchiveCorrupt):
                unpack_case(self.data[:size])

    def test_encrypted_entry(self):
        with self.assertRaises(ArchiveCorrupt) as ctx:
            unpack_case(set_member_flag(self.data, 0x01))
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)

    def test_unsupported_entry_flags(self):
        for bit in (0x20, 0x40):
            with self.subTest(bit=bit), self.assertRaises(ArchiveCorrupt) as ctx:
                unpack_case(set_member_flag(self.data, bit))
            self.assertIsInstance(ctx.exception.__cause__, NotImplementedError)

    def test_missing_table_entry(self):
        with self.assertRaisesRegex(ArchiveCorrupt, "gencost"):
            unpack_case(repack(self.data, gencost=None))

    def test_row_count_mismatch(self):
        tables = {"bus": 4, "gen": 1, "branch": 2, "gencost": 1}
        with self.assertRaisesRegex(ArchiveCorrupt, "manifest says 4"):
            unpack_case(with_metadata(self.data, tables=tables))

    def test_entry_is_not_utf8(self):
        with self.assertRaises(ArchiveCorrupt):
            unpack_case(repack(self.data, gen=b"\xff\xfe\x00"))


class TestArchiveContent(unittest.TestCase):

    def setUp(self):
        self.data = pack_case(three_bus_case())
        self.entries = entries_of(self.data)

    def test_cell_errors_of_all_tables(self):
        bus = self.entries["bus"].decode().replace("90.0", "ninety")
        gen = self.entries["gen"].decode().replace(",1,250.0", ",on,250.0")
        with self.assertRaises(DecodeFailed) as ctx:
            unpack_case(repack(self.data, bus=bus, gen=gen))
        errors = ctx.exception.errors
        self.assertEqual([(e.table, e.row, e.column) for e in errors], [("bus", 2, "pd"), ("gen", 1, "gen_status")])

    def test_invalid_case(self):
        gen = self.entries["gen"].decode().replace("\n1,", "\n7,")
        with self.assertRaises(ValidationFailed) as ctx:
            unpack_case(repack(self.data, gen=gen))
        self.assertEqual(ctx.exception.report.errors[0].field, "gen_bus")

    def test_metadata_of_case(self):
        self.assertEqual(make_metadata(three_bus_case())["tables"]["branch"], 2)


if __name__ == '__main__':
    unittest.main()
