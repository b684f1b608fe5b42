"""Interpretation of appliance responses into outcomes.

Decision table:

    create  status expected and first record has ret_oid  -> CREATED(ret_oid)
    update  status expected and first record has ret_oid  -> UPDATED(ret_oid)
    delete  status expected                               -> DELETED
    read    status expected and at least one record       -> FOUND(first record)
            anything else                                 -> NOT_FOUND

Other create, update and delete answers are FAILED, with the appliance's errmsg
when it sent one.
"""
import logging
from typing import Any, Iterable, Union

from ..errors import DecodeError
from .decode import decode_records, first_field, string_fields
from .schema import Operation, Outcome

logger = logging.getLogger(__name__)

OID_FIELD = "ret_oid"
ERRMSG_FIELD = "errmsg"
UNKNOWN_ERROR = "unknown"


class ResponseInterpreter:
    """Turn status codes and bodies into outcomes."""

    def interpret(
        self,
        operation: Operation,
        status_code: int,
        body: Union[bytes, str, None],
        expected_codes: Iterable[int],
    ) -> Outcome:
        """
        Interpret one response.

        Args:
            operation: Operation the request performed
            status_code: HTTP status code
            body: Raw response body
            expected_codes: Status codes meaning success for this endpoint

        Returns:
            Outcome for the operation

        Raises:
            DecodeError: If a success response cannot be decoded
        """
        success = status_code in set(expected_codes)
        # The body of a failed request only provides the error message
        records = self._decode(body, strict=success and operation != Operation.DELETE)

        if operation == Operation.READ:
            return self._interpret_read(status_code, success, records)

        if operation == Operation.DELETE:
            if success:
                return Outcome.deleted(status_code)
            return Outcome.failed(self._message(records), status_code)

        if success:
            oid = first_field(records, OID_FIELD)
            if oid is not None:
                if operation == Operation.CREATE:
                    return Outcome.created(oid, status_code)
                return Outcome.updated(oid, status_code)
            logger.debug(f"{operation.value}: HTTP {status_code} without {OID_FIELD}")

        return Outcome.failed(self._message(records), status_code)

    def _interpret_read(
        self, status_code: int, success: bool, records: list[dict[str, Any]]
    ) -> Outcome:
        if success and records:
            return Outcome.found(string_fields(records[0]), status_code)
        return Outcome.not_found(self._message(records, default=""), status_code)

    def _decode(self, body: Union[bytes, str, None], strict: bool) -> list[dict[str, Any]]:
        if strict:
            return decode_records(body)
        try:
            return decode_records(body)
        except DecodeError as e:
            logger.debug(f"Ignoring undecodable error body: {e}")
            return []

    @staticmethod
    def _message(records: list[dict[str, Any]], default: str = UNKNOWN_ERROR) -> str:
        return first_field(records, ERRMSG_FIELD) or default
