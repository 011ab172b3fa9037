# /// script
# requires-python = ">=3.10"
# dependencies = [
#     "loguru",
#     "polars",
#     "pydantic",
#     "pysam",
#     "pytest",
# ]
# ///
"""
Pytest fixtures and configuration for rename_bam_contigs testing.

Provides a small three-contig header, a matching translation table on disk,
BAM files built with pysam, and a lightweight stand-in for AlignedSegment so
the remapping rules can be tested without any file I/O.
"""

import sys
import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pysam
import pytest

# Add bin directory to Python path so we can import the modules under test
BIN_DIR = Path(__file__).parent.parent / "bin"
sys.path.insert(0, str(BIN_DIR))

# Now we can import the modules we're testing
from rename_bam_contigs import header_entries, load_translation_table, translate_header

CONTIGS = [("chr1", 1000), ("chr2", 2000), ("chr3", 3000)]


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


def create_sam_header(contigs: list[tuple[str, int]] = CONTIGS) -> dict[str, Any]:
    """Header with one @SQ per contig plus @HD/@RG/@PG/@CO lines."""
    return {
        "HD": {"VN": "1.6", "SO": "unsorted"},
        "SQ": [{"SN": name, "LN": length} for name, length in contigs],
        "RG": [{"ID": "rg1", "SM": "sample1", "PL": "ILLUMINA"}],
        "PG": [{"ID": "bwa", "PN": "bwa", "VN": "0.7.17"}],
        "CO": ["rename_bam_contigs test header"],
    }


@pytest.fixture
def sam_header() -> dict[str, Any]:
    return create_sam_header()


def write_translation_table(path: Path, rows: list[tuple[str, ...]]) -> Path:
    """Write rows as a headerless TSV."""
    with open(path, "w") as f:
        for row in rows:
            f.write("\t".join(row) + "\n")
    return path


@pytest.fixture
def translation_tsv(temp_dir: Path) -> Path:
    """chr1 -> 1, chr3 -> 3; chr2 has no translation."""
    return write_translation_table(
        temp_dir / "translation.tsv",
        [("chr1", "1"), ("chr3", "3")],
    )


@pytest.fixture
def translation(sam_header, translation_tsv):
    """HeaderTranslation of the three-contig header through translation_tsv."""
    return translate_header(
        header_entries(sam_header),
        load_translation_table(translation_tsv),
    )


class MockAlignedSegment:
    """Mock AlignedSegment for unit testing without pysam dependency."""

    def __init__(
        self,
        query_name: str = "test_read",
        reference_id: int = 0,
        next_reference_id: int = -1,
        tags: dict[str, tuple[Any, str]] | None = None,
    ) -> None:
        self.query_name = query_name
        self.reference_id = reference_id
        self.next_reference_id = next_reference_id
        # tag -> (value, SAM value type)
        self.tags = dict(tags or {})

    def get_tag(self, tag: str, with_value_type: bool = False) -> Any:  # noqa: FBT001, FBT002
        if tag not in self.tags:
            msg = f"tag '{tag}' not present"
            raise KeyError(msg)
        value, value_type = self.tags[tag]
        return (value, value_type) if with_value_type else value


@pytest.fixture
def mock_read() -> Callable[..., MockAlignedSegment]:
    """Factory for MockAlignedSegment instances."""
    return MockAlignedSegment


def make_read(
    query_name: str,
    reference_id: int,
    next_reference_id: int = -1,
    reference_start: int = 100,
    rx: str | None = None,
) -> pysam.AlignedSegment:
    """Build a 20M read; paired when next_reference_id is set, unmapped when reference_id is -1."""
    read = pysam.AlignedSegment()
    read.query_name = query_name
    read.query_sequence = "ATCGATCGATCGATCGATCG"
    read.query_qualities = pysam.qualitystring_to_array("I" * 20)
    flag = 0
    if reference_id >= 0:
        read.reference_id = reference_id
        read.reference_start = reference_start
        read.cigartuples = [(0, 20)]  # 20M
        read.mapping_quality = 60
    else:
        flag |= 0x4
    if next_reference_id >= 0:
        flag |= 0x1
        read.next_reference_id = next_reference_id
        read.next_reference_start = reference_start + 200
    read.flag = flag
    if rx is not None:
        read.set_tag("RX", rx, value_type="Z")
    return read


# (query_name, reference_id, next_reference_id, RX)
SAMPLE_READS = [
    ("both_kept", 0, 2, "ACGT"),
    ("own_dropped", 1, 0, None),
    ("mate_dropped", 2, 1, "TTTT"),
    ("both_dropped", 1, 1, "GGGG"),
    ("single_chr3", 2, -1, None),
    ("single_chr2", 1, -1, None),
    ("unplaced", -1, -1, "CCCC"),
]


@pytest.fixture
def sample_bam_file(temp_dir: Path, sam_header: dict[str, Any]) -> Path:
    """BAM over chr1/chr2/chr3 with one read per remapping case, in SAMPLE_READS order."""
    bam_path = temp_dir / "sample.bam"
    with pysam.AlignmentFile(str(bam_path), "wb", header=sam_header) as bam_file:
        for qname, tid, mtid, rx in SAMPLE_READS:
            bam_file.write(make_read(qname, tid, mtid, rx=rx))
    return bam_path


@pytest.fixture(autouse=True)
def configure_logging_for_tests() -> None:
    """Configure logging for tests to reduce noise."""
    # Remove existing handlers and set to WARNING level for tests
    from loguru import logger

    logger.remove()
    logger.add(sys.stderr, level="WARNING")


@pytest.fixture
def read_factory() -> Callable[..., pysam.AlignedSegment]:
    """Factory for real pysam reads (see make_read)."""
    return make_read


@pytest.fixture
def tsv_writer(temp_dir: Path) -> Callable[[str, list[tuple[str, ...]]], Path]:
    """Write a headerless TSV under temp_dir and return its path."""

    def _write(name: str, rows: list[tuple[str, ...]]) -> Path:
        return write_translation_table(temp_dir / name, rows)

    return _write
