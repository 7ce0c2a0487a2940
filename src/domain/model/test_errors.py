"""Unit tests for the directory error taxonomy."""

import asyncio
import unittest

from domain.model.errors import (
    DirectoryOperationError,
    EntityNotFoundError,
    ErrorKind,
    InvalidArgumentError,
    TransientUnavailableError,
    classify,
)


class TestErrorKinds(unittest.TestCase):

    def test_classify(self):
        self.assertEqual(classify(InvalidArgumentError("x")), ErrorKind.INVALID_ARGUMENT)
        self.assertEqual(classify(DirectoryOperationError("x")), ErrorKind.DIRECTORY_OPERATION_FAILED)
        self.assertEqual(classify(TransientUnavailableError("x")), ErrorKind.TRANSIENT_UNAVAILABLE)
        self.assertEqual(classify(EntityNotFoundError("x")), ErrorKind.ENTITY_NOT_FOUND)
        self.assertEqual(classify(asyncio.CancelledError()), ErrorKind.CANCELLED)
        self.assertEqual(classify(RuntimeError("x")), ErrorKind.UNKNOWN)

    def test_directory_operation_error_carries_reason(self):
        e = DirectoryOperationError("Bad request", status_code=400, code="Request_BadRequest")
        self.assertEqual(e.reason, "Bad request")
        self.assertEqual(e.status_code, 400)
        self.assertEqual(str(e), "Bad request")
        self.assertEqual(str(DirectoryOperationError(None)), "Directory operation failed")


if __name__ == '__main__':
    unittest.main()
