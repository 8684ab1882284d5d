"""
Tally of metadata document shapes across the archive.
"""

import json
from collections import Counter
from dataclasses import dataclass, field

from likes_archiver.archive import LocalArchive
from likes_archiver.schemas import parse_tweet_document


@dataclass
class FormatReport:
    total_dirs: int = 0
    total_json: int = 0
    missing_json: int = 0
    parsed: int = 0
    parse_errors: int = 0
    with_author: int = 0
    with_author_username: int = 0
    with_media: int = 0
    shapes: Counter = field(default_factory=Counter)
    unrecognized: Counter = field(default_factory=Counter)


def build_format_report(archive: LocalArchive, max_error_lines: int = 10) -> FormatReport:
    """
    Classify every metadata document in the archive by shape.

    Args:
        archive: Local archive
        max_error_lines: Parse errors printed individually before going quiet

    Returns:
        FormatReport
    """
    report = FormatReport()
    for item_id in archive.list_item_ids():
        report.total_dirs += 1
        path = archive.metadata_path(item_id)
        if path is None:
            report.missing_json += 1
            continue

        report.total_json += 1
        try:
            document = parse_tweet_document(archive.read_metadata(path))
        except (OSError, ValueError) as e:
            report.parse_errors += 1
            if report.parse_errors <= max_error_lines:
                print(f"Parse error: {item_id}: {e}")
            continue

        report.parsed += 1
        report.shapes[document.shape] += 1
        if document.shape == "unrecognized":
            report.unrecognized[",".join(document.raw_keys)] += 1
        if document.author is not None:
            report.with_author += 1
            if document.author.username:
                report.with_author_username += 1
        if document.has_media_list and document.media:
            report.with_media += 1
    return report


def print_format_report(report: FormatReport, top: int = 50):
    print("--------------------------------------------")
    print(f"Directories:            {report.total_dirs}")
    print(f"Metadata documents:     {report.total_json}")
    print(f"Missing metadata:       {report.missing_json}")
    print(f"Parsed:                 {report.parsed}")
    print(f"Parse errors:           {report.parse_errors}")
    print(f"With author:            {report.with_author}")
    print(f"With author.username:   {report.with_author_username}")
    print(f"With media:             {report.with_media}")
    print("--------------------------------------------")
    for shape in ("full_tweet", "light_tweet", "status_only", "unrecognized"):
        print(f"  {shape:<13} {report.shapes.get(shape, 0)}")

    if report.unrecognized:
        print("--------------------------------------------")
        print(f"Unrecognized key sets (top {top}):")
        for keys, count in report.unrecognized.most_common(top):
            print(f"  count={count}  keys=[{keys}]")


def report_as_dict(report: FormatReport) -> dict:
    data = {k: v for k, v in vars(report).items() if not isinstance(v, Counter)}
    data['shapes'] = dict(report.shapes)
    data['unrecognized'] = dict(report.unrecognized)
    return data


def dump_format_report(report: FormatReport) -> str:
    return json.dumps(report_as_dict(report), indent=2, ensure_ascii=False)
