"""Tests for the job model and its wire encoding."""

import re

import orjson
import pytest
from pydantic import ValidationError

from tests.conftest import make_job
from utils.errors import JobDecodeError, JobValidationError
from utils.schemas import ExtractionTask, Job, deserialize_job, new_job_id, serialize_job


class TestJobId:
    def test_format_combines_epoch_and_random_hex(self):
        assert re.fullmatch(r"job_\d{10,}_[0-9a-f]{16}", new_job_id())

    def test_ids_do_not_collide(self):
        assert len({new_job_id() for _ in range(1000)}) == 1000


class TestSerialization:
    def test_round_trip_preserves_every_field(self):
        job = Job.create(["/books/a.pdf", "/books/b.pdf"], ["a.pdf", "b.pdf"], "/out")

        decoded = deserialize_job(serialize_job(job))

        assert decoded == job
        assert decoded.model_dump() == job.model_dump()

    def test_wire_format_uses_every_field_name(self):
        job = make_job()

        assert orjson.loads(serialize_job(job)) == {
            "id": "job_1700000000_ab12cd34",
            "create_timestamp": 1700000000,
            "file_path_list": ["/a.pdf", "/b.pdf"],
            "file_name_list": ["a.pdf", "b.pdf"],
            "output_path": "/out",
        }

    def test_unknown_fields_are_ignored(self):
        raw = orjson.loads(serialize_job(make_job()))
        raw["priority"] = "high"

        decoded = deserialize_job(orjson.dumps(raw))

        assert decoded == make_job()

    @pytest.mark.parametrize(
        "payload",
        [
            b"not json",
            b"",
            b"[1, 2, 3]",
            b'"job"',
            b'{"id": "job_1"}',
            b'{"id": "job_1", "create_timestamp": 1, "file_path_list": "x", '
            b'"file_name_list": [], "output_path": "/out"}',
        ],
    )
    def test_malformed_payloads_raise_decode_error(self, payload):
        with pytest.raises(JobDecodeError):
            deserialize_job(payload)

    def test_decoding_does_not_check_alignment(self):
        job = make_job(file_paths=["/a.pdf", "/b.pdf"], file_names=["a.pdf"])

        decoded = deserialize_job(serialize_job(job))

        assert decoded.file_name_list == ["a.pdf"]


class TestJob:
    def test_job_is_immutable(self):
        job = make_job()

        with pytest.raises(ValidationError):
            job.output_path = "/elsewhere"

    def test_create_stamps_id_and_time(self):
        job = Job.create(["/a.pdf"], ["a.pdf"], "/out")

        assert job.id.startswith("job_")
        assert job.create_timestamp > 1700000000

    def test_ensure_aligned_accepts_matching_lists(self):
        make_job().ensure_aligned()

    def test_ensure_aligned_rejects_mismatched_lists(self):
        job = make_job(file_paths=["/a.pdf", "/b.pdf"], file_names=["a.pdf"])

        with pytest.raises(JobValidationError, match="different lengths"):
            job.ensure_aligned()

    def test_ensure_aligned_rejects_empty_job(self):
        with pytest.raises(JobValidationError, match="no files"):
            make_job(file_paths=[], file_names=[]).ensure_aligned()

    def test_tasks_pair_paths_with_names_by_index(self):
        job = make_job(file_paths=["/src/1.pdf", "/src/2.pdf"], file_names=["one.pdf", "two.pdf"])

        assert job.tasks() == [
            ExtractionTask("job_1700000000_ab12cd34", "/src/1.pdf", "one.pdf", "/out"),
            ExtractionTask("job_1700000000_ab12cd34", "/src/2.pdf", "two.pdf", "/out"),
        ]


@pytest.mark.parametrize(
    ("file_name", "expected"),
    [
        ("a.pdf", "a.txt"),
        ("report.final.pdf", "report.final.txt"),
        ("README", "README.txt"),
    ],
)
def test_output_file_swaps_extension_for_txt(file_name, expected, tmp_path):
    task = ExtractionTask("job_1", "/src/x", file_name, str(tmp_path))

    assert task.output_file == tmp_path / expected
