"""
Operator commands over the error ledger: list, summary, clear, retry, filter by type.
"""

import json
from typing import List, Optional

from likes_archiver.models import ERROR_KIND_DESCRIPTIONS, ErrorKind, ErrorRecord
from likes_archiver.resilience.error_ledger import ErrorLedger


ERROR_COMMANDS = ['list', 'summary', 'clear', 'clear-all', 'retry', 'type']

_SHOWN_DETAILS = ('statusCode', 'isTimeout', 'url', 'mediaType', 'message')


def print_record(record: ErrorRecord, show_type: bool = True):
    print(f"\nPost id: {record.item_id}")
    if show_type:
        print(f"  Type: {record.kind.value}")
    print(f"  Time: {record.timestamp}")
    print(f"  Retries: {record.retry_count}")

    details = record.details or {}
    if details.get('statusCode'):
        print(f"  HTTP status: {details['statusCode']}")
    if details.get('isTimeout'):
        print("  Timeout: yes")
    if details.get('url'):
        print(f"  URL: {details['url']}")
    if details.get('mediaType'):
        print(f"  Media type: {details['mediaType']}")
    if details.get('message'):
        print(f"  Message: {details['message']}")

    other = {k: v for k, v in details.items() if k not in _SHOWN_DETAILS}
    if other:
        print(f"  Other: {json.dumps(other, indent=2, ensure_ascii=False)}")


def list_errors(ledger: ErrorLedger) -> List[ErrorRecord]:
    records = ledger.get_error_list()
    if not records:
        print("No errors")
        return records

    print(f"\n=== Errors ({len(records)}) ===")
    for record in records:
        print_record(record)
    return records


def clear_error(ledger: ErrorLedger, item_id: Optional[str], retry: bool = False) -> bool:
    """
    Clear one post's error record.

    Args:
        ledger: Error ledger
        item_id: Post id
        retry: Word the message for the retry command

    Returns:
        True if a record was removed
    """
    if not item_id:
        print("Please specify a post id")
        return False

    if not ledger.remove_error(item_id):
        print(f"Post {item_id} has no error")
        return False

    if retry:
        print(f"Cleared the error for {item_id}. It will be retried on the next run.")
    else:
        print(f"Cleared the error for {item_id}")
    return True


def clear_all_errors(ledger: ErrorLedger):
    ledger.clear_all_errors()
    print("Cleared all errors")


def show_errors_by_type(ledger: ErrorLedger, kind_name: Optional[str]) -> List[ErrorRecord]:
    if not kind_name:
        print("Please specify an error type")
        return []

    try:
        kind = ErrorKind(kind_name)
    except ValueError:
        print(f'Unknown error type "{kind_name}". Valid types: {", ".join(k.value for k in ErrorKind)}')
        return []

    records = ledger.get_errors_by_type(kind)
    if not records:
        print(f'No errors of type "{kind.value}"')
        return records

    print(f'\n=== Errors of type "{kind.value}" ({len(records)}) ===')
    for record in records:
        print_record(record, show_type=False)
    return records


def error_types_help() -> str:
    return "\n".join(f"  {kind.value} - {ERROR_KIND_DESCRIPTIONS[kind]}" for kind in ErrorKind)


def run_error_command(ledger: ErrorLedger, command: str, argument: Optional[str] = None) -> int:
    """
    Dispatch an error command.

    Args:
        ledger: Error ledger (non-batch, so mutations persist immediately)
        command: One of ERROR_COMMANDS
        argument: Post id or error type where the command needs one

    Returns:
        Process exit code
    """
    if command == 'list':
        list_errors(ledger)
    elif command == 'summary':
        ledger.print_summary()
    elif command == 'clear':
        clear_error(ledger, argument)
        return 0 if argument else 1
    elif command == 'clear-all':
        clear_all_errors(ledger)
    elif command == 'retry':
        clear_error(ledger, argument, retry=True)
        return 0 if argument else 1
    elif command == 'type':
        show_errors_by_type(ledger, argument)
        return 0 if argument else 1
    else:
        print(f"Unknown command: {command}")
        return 1
    return 0
