#!/usr/bin/env python3
# /// script
# requires-python = ">=3.10"
# dependencies = [
#     "loguru",
#     "polars",
#     "pydantic",
#     "pysam",
# ]
# ///
"""
Rename the contigs of a SAM/BAM/CRAM file with a two-column translation table.

The header's @SQ lines are rewritten with the translated names; contigs that have
no translation are removed from the header. Every record's reference_id and
next_reference_id are remapped onto the new header. A record is dropped only when
neither its own contig nor its mate's contig survives, and the drop is counted
under the original contig name. Optionally the value of a string tag (RX by
default) is appended to each kept read name as `<name>_<value>`.
"""

from __future__ import annotations

import argparse
import sys
from collections import Counter
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, NamedTuple

import polars as pl
import pysam
from loguru import logger
from pydantic import field_validator
from pydantic.dataclasses import dataclass as pydantic_dataclass

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping, Sequence

# ------------------------------- CONSTANTS -------------------------------- #

SEQUENCE_RECORD = "SQ"
SEQUENCE_NAME_TAG = "SN"
SINGLE_RECORD_TYPES = {"HD"}

# reference_id / next_reference_id of a record with no reference
NO_REFERENCE: int = -1
# SAM spells the missing reference name as '*'
NO_REFERENCE_NAME = "*"

DEFAULT_NAME_TAG = "RX"
NAME_TAG_SEPARATOR = "_"

# BAM stores l_read_name in a uint8, including the trailing NUL
MAX_QNAME_LENGTH: int = 254

# Emit a progress debug line after processing this many records
DEBUG_EVERY: int = 100_000


# ------------------------------- EXCEPTIONS -------------------------------- #


class TranslationTableError(ValueError):
    """The translation table could not be read as two string columns."""


class HeaderTranslationError(ValueError):
    """The translated header would not be a valid SAM header."""


class IndexMapError(RuntimeError):
    """The old-to-new reference index table lost its one-to-one shape."""


# ------------------------------- DATA TYPES -------------------------------- #


@pydantic_dataclass(frozen=True)
class RenameConfig:
    """Per-run options for record remapping and reporting."""

    name_tag: str | None = DEFAULT_NAME_TAG
    keep_unplaced: bool = False
    drop_report: Path | None = None

    @field_validator("name_tag")
    @classmethod
    def two_character_tag(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if len(v) != 2 or not v[0].isalpha() or not v[1].isalnum() or not v.isascii():  # noqa: PLR2004
            msg = f"SAM tags are two characters, [A-Za-z][A-Za-z0-9]; got {v!r}"
            raise ValueError(msg)
        return v


@dataclass(frozen=True)
class HeaderEntry:
    """
    One header line: its record type (HD, SQ, RG, PG, CO, ...) and its tags in
    file order. @CO lines have no tags; their free text lives in `text`.
    """

    record_type: str
    tags: tuple[tuple[str, Any], ...] = ()
    text: str | None = None

    def get(self, tag: str) -> Any | None:
        """Return the value of `tag`, or None if the line does not carry it."""
        for name, value in self.tags:
            if name == tag:
                return value
        return None

    def with_tag(self, tag: str, value: Any) -> HeaderEntry:
        """Copy of this entry with `tag` set to `value`, keeping tag order."""
        return HeaderEntry(
            self.record_type,
            tuple((name, value if name == tag else old) for name, old in self.tags),
            self.text,
        )


def header_entries(header_dict: Mapping[str, Any]) -> list[HeaderEntry]:
    """
    Flatten a pysam header dictionary (AlignmentHeader.to_dict()) into a list of
    HeaderEntry, preserving the order of lines within each record type.
    """
    entries: list[HeaderEntry] = []
    for record_type, records in header_dict.items():
        # @HD is a single dict rather than a list of them
        if isinstance(records, dict):
            records = [records]
        for record in records:
            if isinstance(record, str):
                entries.append(HeaderEntry(record_type, text=record))
            else:
                entries.append(HeaderEntry(record_type, tuple(record.items())))
    return entries


def entries_to_header_dict(entries: Iterable[HeaderEntry]) -> dict[str, Any]:
    """Rebuild a header dictionary suitable for pysam.AlignmentFile(header=...)."""
    header: dict[str, Any] = {}
    for entry in entries:
        if entry.record_type in SINGLE_RECORD_TYPES:
            header[entry.record_type] = dict(entry.tags)
        elif entry.text is not None:
            header.setdefault(entry.record_type, []).append(entry.text)
        else:
            header.setdefault(entry.record_type, []).append(dict(entry.tags))
    return header


class IndexMap:
    """
    Old reference index -> new reference index.

    Populated once while the header is translated, then frozen. Each old index
    is inserted at most once and each new index is used at most once; anything
    else means the header scan is broken and raises IndexMapError.
    """

    def __init__(self) -> None:
        self._old_to_new: dict[int, int] = {}
        self._used: set[int] = set()
        self._frozen = False

    def insert(self, old: int, new: int) -> None:
        if self._frozen:
            msg = f"IndexMap is frozen; refusing to insert {old} -> {new}"
            raise IndexMapError(msg)
        if old in self._old_to_new:
            msg = (
                f"Reference index {old} already mapped to {self._old_to_new[old]}; "
                f"refusing to remap it to {new}"
            )
            raise IndexMapError(msg)
        if new in self._used:
            msg = f"New reference index {new} is already taken; cannot map {old} onto it"
            raise IndexMapError(msg)
        self._old_to_new[old] = new
        self._used.add(new)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, old: int) -> int | None:
        return self._old_to_new.get(old)

    def items(self) -> Iterable[tuple[int, int]]:
        return self._old_to_new.items()

    def new_indices(self) -> list[int]:
        return sorted(self._used)

    def as_dict(self) -> dict[int, int]:
        return dict(self._old_to_new)

    def __contains__(self, old: object) -> bool:
        return old in self._old_to_new

    def __len__(self) -> int:
        return len(self._old_to_new)

    def __repr__(self) -> str:
        return f"IndexMap({self._old_to_new!r})"


@dataclass(frozen=True)
class HeaderTranslation:
    """Result of translating a header: the new lines plus the index bookkeeping."""

    entries: tuple[HeaderEntry, ...]
    index_map: IndexMap
    original_names: tuple[str, ...]

    @property
    def kept_count(self) -> int:
        return len(self.index_map)

    @property
    def dropped_contigs(self) -> list[str]:
        """Original names of contigs that had no translation, in header order."""
        return [
            name
            for old, name in enumerate(self.original_names)
            if old not in self.index_map
        ]

    def original_name(self, tid: int, query_name: str | None = None) -> str:
        """Contig name a record pointed at in the input, '*' for no reference."""
        if tid < 0:
            return NO_REFERENCE_NAME
        if tid >= len(self.original_names):
            msg = (
                f"Record '{query_name}' has reference id {tid}, but the input header "
                f"only defines {len(self.original_names)} contigs"
            )
            raise IndexMapError(msg)
        return self.original_names[tid]

    def header_dict(self) -> dict[str, Any]:
        return entries_to_header_dict(self.entries)


class DropSummary(NamedTuple):
    """Snapshot of DropStatistics for reporting."""

    total: int
    per_contig: dict[str, int]

    def to_frame(self) -> pl.DataFrame:
        """Per-contig drop counts, largest first."""
        return pl.DataFrame(
            {
                "contig": list(self.per_contig.keys()),
                "dropped_records": list(self.per_contig.values()),
            },
            schema={"contig": pl.String, "dropped_records": pl.Int64},
        ).sort(["dropped_records", "contig"], descending=[True, False])


class DropStatistics:
    """Counts of dropped records, keyed by the record's original contig name."""

    def __init__(self) -> None:
        self._per_contig: Counter[str] = Counter()
        self._total = 0

    def record_drop(self, contig: str) -> None:
        self._per_contig[contig] += 1
        self._total += 1

    @property
    def total(self) -> int:
        return self._total

    def count(self, contig: str) -> int:
        return self._per_contig[contig]

    def merge(self, other: DropStatistics) -> DropStatistics:
        """Return a new accumulator holding the counts of both."""
        merged = DropStatistics()
        merged._per_contig = self._per_contig + other._per_contig
        merged._total = self._total + other._total
        return merged

    def summary(self) -> DropSummary:
        return DropSummary(self._total, dict(self._per_contig))

    def __len__(self) -> int:
        return len(self._per_contig)


class RemapOutcome(Enum):
    """What happened to one record while remapping it onto the new header."""

    REMAPPED = auto()  # every placed side translated
    REFERENCE_ONLY = auto()  # mate's contig removed, next_reference_id cleared
    MATE_ONLY = auto()  # own contig removed, reference_id cleared
    UNPLACED = auto()  # no reference on either side, kept as-is
    DROPPED = auto()  # neither contig translated

    @property
    def is_kept(self) -> bool:
        return self is not RemapOutcome.DROPPED


class StreamTotals(NamedTuple):
    """Counters returned by process_stream."""

    processed: int
    kept: int
    reference_only: int
    mate_only: int
    unplaced: int
    dropped: int
    write_failures: int
    drops: DropSummary


# ----------------------------- LOGGING SETUP ------------------------------- #


def configure_logging(verbose: int, quiet: int) -> None:
    """
    Base at SUCCESS (0). Positive → louder (more verbose), negative → quieter.
    Map:
      +3.. = TRACE
      +2   = DEBUG
      +1   = INFO
       0   = SUCCESS
      -1   = WARNING
      -2   = ERROR
      <=-3 = CRITICAL
    """
    logger.remove()
    delta = verbose - quiet
    match delta:
        case d if d >= 3:  # noqa: PLR2004
            level_str = "TRACE"
        case 2:
            level_str = "DEBUG"
        case 1:
            level_str = "INFO"
        case 0:
            level_str = "SUCCESS"
        case -1:
            level_str = "WARNING"
        case -2:
            level_str = "ERROR"
        case d if d <= -3:  # noqa: PLR2004
            level_str = "CRITICAL"
    logger.add(sys.stderr, level=level_str)
    logger.debug(f"Logger configured at level: {level_str}")


# --------------------------- TRANSLATION TABLE ----------------------------- #


def load_translation_table(path: str | Path) -> Mapping[str, str]:
    """
    Read a headerless, tab-delimited `old<TAB>new` file into a read-only mapping.

    Later rows overwrite earlier rows with the same old name. Any row that does
    not have exactly two non-empty fields makes the whole table unusable.
    """
    path = Path(path)
    if not path.is_file():
        msg = f"Translation table not found: {path}"
        logger.error(msg)
        raise FileNotFoundError(msg)

    try:
        frame = pl.read_csv(
            path,
            separator="\t",
            has_header=False,
            infer_schema_length=0,  # every column as a string
            quote_char=None,
        )
    except pl.exceptions.PolarsError as e:
        msg = f"Could not parse translation table {path}: {e}"
        logger.error(msg)
        raise TranslationTableError(msg) from e

    if frame.width != 2:  # noqa: PLR2004
        msg = f"Translation table {path} must have exactly two columns, found {frame.width}"
        logger.error(msg)
        raise TranslationTableError(msg)

    frame = frame.rename(dict(zip(frame.columns, ["old_name", "new_name"]))).select(
        pl.col("old_name").str.strip_chars(),
        pl.col("new_name").str.strip_chars(),
    )

    bad_rows = frame.with_row_index("row").filter(
        pl.any_horizontal(
            pl.col("old_name").is_null() | (pl.col("old_name") == ""),
            pl.col("new_name").is_null() | (pl.col("new_name") == ""),
        )
    )
    if bad_rows.height > 0:
        first = bad_rows.row(0, named=True)["row"] + 1
        msg = (
            f"Translation table {path} has {bad_rows.height} row(s) with a missing "
            f"name (first at line {first})"
        )
        logger.error(msg)
        raise TranslationTableError(msg)

    table: dict[str, str] = {}
    for old_name, new_name in frame.iter_rows():
        if old_name in table and table[old_name] != new_name:
            logger.debug(
                f"Translation for '{old_name}' redefined: '{table[old_name]}' -> '{new_name}'",
            )
        table[old_name] = new_name

    logger.info(f"Loaded {len(table)} contig translations from {path}")
    return MappingProxyType(table)


# --------------------------- HEADER TRANSLATION ---------------------------- #


def translate_header(
    entries: Iterable[HeaderEntry],
    table: Mapping[str, str],
) -> HeaderTranslation:
    """
    Rename @SQ lines through `table` and build the old -> new reference index map.

    Indices follow the positional rule readers use: the n-th @SQ line is
    reference n. `old_index` therefore advances on every original @SQ line,
    `new_index` only on the ones that are kept, so new indices stay dense.
    @SQ lines without a translation are removed; all other lines are copied
    unchanged and only the SN tag of a kept @SQ line is ever rewritten.
    """
    index_map = IndexMap()
    new_entries: list[HeaderEntry] = []
    original_names: list[str] = []
    seen_new_names: dict[str, str] = {}
    old_index = 0
    new_index = 0

    for entry in entries:
        if entry.record_type != SEQUENCE_RECORD:
            new_entries.append(entry)
            continue

        name = entry.get(SEQUENCE_NAME_TAG)
        if name is None:
            msg = f"@SQ line {old_index} has no {SEQUENCE_NAME_TAG} tag: {entry.tags}"
            logger.error(msg)
            raise HeaderTranslationError(msg)
        original_names.append(name)
        translated = table.get(name)

        if translated is None:
            logger.debug(f"No translation for contig '{name}' (tid {old_index}); removing it")
        else:
            if translated in seen_new_names:
                msg = (
                    f"Contigs '{seen_new_names[translated]}' and '{name}' both translate "
                    f"to '{translated}'; the output header would repeat that name"
                )
                logger.error(msg)
                raise HeaderTranslationError(msg)
            seen_new_names[translated] = name
            new_entries.append(entry.with_tag(SEQUENCE_NAME_TAG, translated))
            index_map.insert(old_index, new_index)
            logger.trace(f"Contig '{name}' -> '{translated}' (tid {old_index} -> {new_index})")
            new_index += 1
        old_index += 1

    index_map.freeze()

    # Positive invariant: kept contigs occupy exactly 0..k-1 in the new header
    assert index_map.new_indices() == list(range(new_index)), (
        f"New reference indices are not dense: {index_map.new_indices()}"
    )
    assert old_index == len(original_names), (
        f"Visited {old_index} @SQ lines but recorded {len(original_names)} names"
    )

    logger.info(
        f"Header translated: kept {new_index} of {old_index} contigs, "
        f"removed {old_index - new_index}",
    )
    return HeaderTranslation(tuple(new_entries), index_map, tuple(original_names))


# ---------------------------- RECORD REMAPPING ----------------------------- #


def append_tag_to_name(aln: pysam.AlignedSegment, tag: str) -> bool:
    """
    Append `_<value>` to the read name when `tag` is present with type Z.

    Returns True when the name changed. A missing tag or a non-string tag is not
    an error; neither is a name that would grow past the BAM limit, which is
    left as-is with a warning.
    """
    try:
        value, value_type = aln.get_tag(tag, with_value_type=True)
    except KeyError:
        return False
    if value_type != "Z":
        return False

    new_name = f"{aln.query_name}{NAME_TAG_SEPARATOR}{value}"
    if len(new_name) > MAX_QNAME_LENGTH:
        logger.warning(
            f"Not appending {tag} to '{aln.query_name}': name would be "
            f"{len(new_name)} characters (limit {MAX_QNAME_LENGTH})",
        )
        return False
    aln.query_name = new_name
    return True


def remap_record(
    aln: pysam.AlignedSegment,
    translation: HeaderTranslation,
    stats: DropStatistics,
    name_tag: str | None = DEFAULT_NAME_TAG,
    keep_unplaced: bool = False,  # noqa: FBT001, FBT002
) -> RemapOutcome:
    """
    Move one record onto the translated header, in place.

      own contig kept | mate contig kept | result
      ----------------+------------------+----------------------------------
      yes             | yes              | both ids remapped
      yes             | no               | id remapped, next_reference_id -1
      no              | yes              | reference_id -1, mate id remapped
      no              | no               | dropped, counted under own contig

    A side that had no reference to begin with (-1) is not counted as removed:
    a single-end read on a kept contig, or an unmapped read whose mate is on a
    kept contig, comes out as REMAPPED. A record with no reference on either
    side is dropped like any other untranslated record unless `keep_unplaced`
    is set. The name tag is only applied to records that are kept.
    """
    index_map = translation.index_map
    # Negative invariant: records are only remapped against a finished map
    assert index_map.frozen, "Record remapped before header translation finished"

    old_tid = aln.reference_id
    old_mtid = aln.next_reference_id
    new_tid = index_map.get(old_tid)
    new_mtid = index_map.get(old_mtid)

    if new_tid is None and new_mtid is None:
        if keep_unplaced and old_tid == NO_REFERENCE and old_mtid == NO_REFERENCE:
            outcome = RemapOutcome.UNPLACED
        else:
            contig = translation.original_name(old_tid, aln.query_name)
            stats.record_drop(contig)
            logger.trace(f"Dropping '{aln.query_name}': contig '{contig}' was removed")
            return RemapOutcome.DROPPED
    else:
        aln.reference_id = NO_REFERENCE if new_tid is None else new_tid
        aln.next_reference_id = NO_REFERENCE if new_mtid is None else new_mtid
        if new_tid is None and old_tid != NO_REFERENCE:
            outcome = RemapOutcome.MATE_ONLY
        elif new_mtid is None and old_mtid != NO_REFERENCE:
            outcome = RemapOutcome.REFERENCE_ONLY
        else:
            outcome = RemapOutcome.REMAPPED

    if name_tag is not None:
        append_tag_to_name(aln, name_tag)

    return outcome


def report_drop_summary(summary: DropSummary) -> None:
    """Log how many records were dropped, in total and per original contig."""
    logger.success(f"Skipped {summary.total} record(s) with no translated contig")
    for contig, count in sorted(summary.per_contig.items(), key=lambda kv: (-kv[1], kv[0])):
        logger.success(f"  {contig}: {count}")


# ----------------------------- I/O UTILITIES ------------------------------- #


def _io_mode_from_ext(path: str, write: bool) -> str:  # noqa: FBT001
    """Determine pysam open mode from filename extension."""
    lower = path.lower()
    if lower.endswith(".sam"):
        return "w" if write else "r"
    if lower.endswith(".bam"):
        return "wb" if write else "rb"
    if lower.endswith(".cram"):
        return "wc" if write else "rc"
    msg = f"Alignment to rename ({'output' if write else 'input'}) must end with .sam, .bam, or .cram: {path}"
    logger.error(msg)
    raise ValueError(msg)


def open_alignment(
    path: str,
    write: bool,  # noqa: FBT001
    template_or_header: pysam.AlignmentFile | dict | None = None,
    reference: str | None = None,
) -> pysam.AlignmentFile:
    """
    Open SAM/BAM/CRAM with the mode implied by the extension. CRAM takes an
    optional reference FASTA. Writing needs either a template AlignmentFile or
    a header dict; renaming always passes the translated header dict.
    """
    mode = _io_mode_from_ext(path, write)

    kwargs = {}
    if path.lower().endswith(".cram") and reference is None:
        logger.warning(
            f"Opening CRAM without explicit reference: {path}. "
            "Decoding may fail unless the reference is resolvable.",
        )
    if path.lower().endswith(".cram") and reference is not None:
        kwargs["reference_filename"] = reference

    action = "write" if write else "read"
    logger.debug(f"Opening for {action}: {path} (mode={mode})")
    if not write:
        return pysam.AlignmentFile(path, mode, check_sq=False, **kwargs)

    if isinstance(template_or_header, pysam.AlignmentFile):
        return pysam.AlignmentFile(path, mode, template=template_or_header, **kwargs)
    if isinstance(template_or_header, dict):
        return pysam.AlignmentFile(path, mode, header=template_or_header, **kwargs)
    msg = f"Writing requires either a template AlignmentFile or a header dict, got {type(template_or_header)}"
    logger.error(msg)
    raise ValueError(msg)


# ------------------------------ CORE LOGIC --------------------------------- #


def process_stream(
    records: Iterator[pysam.AlignedSegment] | pysam.AlignmentFile,
    outp: pysam.AlignmentFile,
    translation: HeaderTranslation,
    config: RenameConfig,
    stats: DropStatistics | None = None,
) -> StreamTotals:
    """
    Remap every record in input order and write the ones that are kept.

    A failed write is logged and counted and the run moves on to the next
    record. Drops accumulate into `stats` (a fresh DropStatistics if None).
    """
    if stats is None:
        stats = DropStatistics()
    outcomes: Counter[RemapOutcome] = Counter()
    write_failures = 0
    processed = 0

    for aln in records:
        processed += 1
        if processed % DEBUG_EVERY == 0:
            logger.debug(
                f"Progress: processed={processed}, dropped={outcomes[RemapOutcome.DROPPED]}, "
                f"write_failures={write_failures}",
            )

        outcome = remap_record(
            aln,
            translation,
            stats,
            name_tag=config.name_tag,
            keep_unplaced=config.keep_unplaced,
        )
        outcomes[outcome] += 1
        if not outcome.is_kept:
            continue

        try:
            outp.write(aln)
        except (OSError, ValueError) as e:
            write_failures += 1
            logger.error(f"Failed to write record '{aln.query_name}': {e}")

    dropped = outcomes[RemapOutcome.DROPPED]
    kept = processed - dropped - write_failures

    # Final invariants: every record lands in exactly one bucket
    assert sum(outcomes.values()) == processed, (
        f"Outcome count inconsistency: {dict(outcomes)} vs processed={processed}"
    )
    assert kept >= 0, f"Negative kept count: {kept}"

    logger.info(
        f"Process totals: processed={processed}, kept={kept}, "
        f"reference_only={outcomes[RemapOutcome.REFERENCE_ONLY]}, "
        f"mate_only={outcomes[RemapOutcome.MATE_ONLY]}, "
        f"unplaced={outcomes[RemapOutcome.UNPLACED]}, dropped={dropped}, "
        f"write_failures={write_failures}",
    )

    return StreamTotals(
        processed=processed,
        kept=kept,
        reference_only=outcomes[RemapOutcome.REFERENCE_ONLY],
        mate_only=outcomes[RemapOutcome.MATE_ONLY],
        unplaced=outcomes[RemapOutcome.UNPLACED],
        dropped=dropped,
        write_failures=write_failures,
        drops=stats.summary(),
    )


def rename_contigs(
    in_path: str,
    out_path: str,
    table_path: str | Path,
    config: RenameConfig | None = None,
    reference: str | None = None,
) -> StreamTotals:
    """
    Whole run: load the table, translate the header, stream the records.

    Table and header problems raise before the output file is created.
    """
    if config is None:
        config = RenameConfig()

    table = load_translation_table(table_path)

    with open_alignment(in_path, write=False, reference=reference) as input_alignment:
        translation = translate_header(
            header_entries(input_alignment.header.to_dict()),
            table,
        )
        if translation.dropped_contigs:
            logger.info(
                f"Contigs without translation: {', '.join(translation.dropped_contigs)}",
            )

        with open_alignment(
            out_path,
            write=True,
            template_or_header=translation.header_dict(),
            reference=reference,
        ) as output_alignment:
            totals = process_stream(
                input_alignment.fetch(until_eof=True),
                output_alignment,
                translation,
                config,
            )

    report_drop_summary(totals.drops)
    if config.drop_report is not None:
        totals.drops.to_frame().write_csv(config.drop_report, separator="\t")
        logger.info(f"Wrote drop report to {config.drop_report}")
    return totals


# --------------------------------- CLI ------------------------------------- #


def build_parser() -> argparse.ArgumentParser:
    """
    CLI:
      -v / -vv / -vvv : increase verbosity (INFO -> DEBUG -> TRACE)
      -q / -qq / -qqq : decrease verbosity (WARNING -> ERROR -> CRITICAL)
    (Mutually exclusive.)
    """
    p = argparse.ArgumentParser(
        description=(
            "Rename contigs in a SAM/BAM/CRAM file using a two-column, tab-delimited "
            "translation table (old<TAB>new).\n"
            "Contigs missing from the table are removed from the header; records are "
            "remapped onto the new header and dropped only when neither the read nor "
            "its mate lies on a translated contig."
        ),
    )

    # I/O
    p.add_argument(
        "-i",
        "--in",
        dest="in_path",
        required=True,
        help="Input SAM/BAM/CRAM",
    )
    p.add_argument(
        "-o",
        "--out",
        dest="out_path",
        required=True,
        help="Output SAM/BAM/CRAM",
    )
    p.add_argument(
        "-t",
        "--translation",
        dest="translation_path",
        required=True,
        help="Headerless TSV with two columns: old contig name, new contig name",
    )
    p.add_argument(
        "--ref",
        dest="reference",
        default=None,
        help="Reference FASTA (required/recommended for CRAM read/write)",
    )

    # Read names
    name_group = p.add_argument_group("Read Names")
    name_group.add_argument(
        "--name-tag",
        default=DEFAULT_NAME_TAG,
        help=f"String tag whose value is appended to read names as _<value> (default: {DEFAULT_NAME_TAG})",
    )
    name_group.add_argument(
        "--no-name-tag",
        action="store_true",
        help="Leave read names untouched",
    )

    # Selection and reporting
    p.add_argument(
        "--keep-unplaced",
        action="store_true",
        help="Keep records with no reference on either side instead of dropping them",
    )
    p.add_argument(
        "--drop-report",
        default=None,
        help="Write per-contig drop counts to this TSV",
    )

    # Verbosity: -v/-vv/-vvv or -q/-qq/-qqq (mutually exclusive)
    g = p.add_mutually_exclusive_group()
    g.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (use up to -vvv).",
    )
    g.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Decrease verbosity (use up to -qqq).",
    )

    return p


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose, args.quiet)
    logger.info("Starting contig renaming run.")

    try:
        config = RenameConfig(
            name_tag=None if args.no_name_tag else args.name_tag,
            keep_unplaced=bool(args.keep_unplaced),
            drop_report=args.drop_report,
        )
    except ValueError as e:
        logger.error(f"Invalid options: {e}")
        sys.exit(1)
    logger.debug(f"RenameConfig: {config}")

    try:
        totals = rename_contigs(
            args.in_path,
            args.out_path,
            args.translation_path,
            config,
            reference=args.reference,
        )
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Renaming aborted: {e}")
        sys.exit(1)

    logger.success(
        f"Kept: {totals.kept} | Own contig removed (mate kept): {totals.mate_only} | "
        f"Mate contig removed: {totals.reference_only} | Dropped: {totals.dropped} | "
        f"Write failures: {totals.write_failures}",
    )
    logger.info("Contig renaming run complete.")


if __name__ == "__main__":
    main()
