"""Digest collections -- ordered digest records mirrored to a flat file"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from libdigest import exc
from libdigest._logging import logger
from libdigest._utils.str import as_str, check_field, is_ascii_codec
from libdigest.record import DigestRecord
from libdigest.storage import FileStorage, WriteOptions

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from typing_extensions import Self

    from libdigest._utils.str import StrOrBytes
    from libdigest.encoders.abc import DigestEncoder
    from libdigest.storage import StrPath

__all__ = [
    "DigestCollection",
    "HtdigestCollection",
    "HtpasswdCollection",
]

_COLON = ":"
_HASH = "#"


class DigestCollection:
    """Common framework for HtdigestCollection & HtpasswdCollection.

    Records are kept in a list, indexed ``0..count()-1``.
    Deleting a record shifts every later record down by one, so an
    index is only meaningful until the next :meth:`add` or :meth:`delete`;
    use :meth:`find_by_uid` to locate a user again after changes.

    Nothing is written to disk until :meth:`write` is called, and
    :meth:`write` always rewrites the whole file.
    """

    #: name of file format, used in error messages
    _format_name = "digest"

    def __init__(
        self,
        path: Optional[StrPath],
        digests: Iterable[DigestRecord] = (),
        encoder: Optional[DigestEncoder] = None,
        write_options: Optional[WriteOptions] = None,
        encoding: str = "utf-8",
    ) -> None:
        if not encoding:
            raise TypeError("'encoding' is required")
        if not is_ascii_codec(encoding):
            # digest files use ":" separator and 1-byte chars,
            # so only ascii-compatible encodings are allowed.
            raise ValueError("encoding must be 7-bit ascii compatible")

        self.encoding = encoding
        self._storage = FileStorage(path, encoding=encoding)
        self._encoder = encoder
        self._write_options = write_options or WriteOptions()
        self._records: list[DigestRecord] = [
            self._check_record(record) for record in digests
        ]
        self._synced = False

    @classmethod
    def from_string(cls, data: StrOrBytes, **kwargs: Any) -> Self:
        """create new collection from raw file content, without reading storage.

        :arg data: file content to parse, as str or bytes.

        :param \\*\\*kwargs:
            all other keywords are the same as in the class constructor
        """
        if "path" in kwargs:
            raise TypeError("'path' not accepted by from_string()")
        instance = cls(path=None, **kwargs)
        instance.load_string(data)
        return instance

    def __repr__(self) -> str:
        tail = ""
        if self.path:
            tail += f" path={self.path!r}"
        if self.encoding != "utf-8":
            tail += f" encoding={self.encoding!r}"
        return f"<{self.__class__.__name__} 0x{id(self):0x}{tail}>"

    # =========================================================================
    # configuration
    # =========================================================================

    @property
    def path(self) -> Optional[StrPath]:
        return self._storage.path

    @property
    def encoder(self) -> Optional[DigestEncoder]:
        return self._encoder

    @property
    def write_options(self) -> WriteOptions:
        return self._write_options

    @property
    def synced(self) -> bool:
        """true if records are known to equal the file content
        (i.e. after a successful :meth:`read` or :meth:`write`, and no changes since)
        """
        return self._synced

    def set_encoder(self, encoder: DigestEncoder) -> Self:
        """Bind the encoder used by :meth:`add`"""
        self._encoder = encoder
        return self

    def set_write_options(self, options: WriteOptions) -> Self:
        """Set options used by :meth:`write`"""
        self._write_options = options
        return self

    # =========================================================================
    # inspection
    # =========================================================================

    def count(self) -> int:
        return len(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[DigestRecord]:
        return iter(self._records)

    def __getitem__(self, index: int) -> DigestRecord:
        return self.get(index)

    def _check_index(self, index: int) -> bool:
        # NOTE: negative indexes are out of range, not counted from the end.
        return 0 <= index < len(self._records)

    def get(self, index: int) -> DigestRecord:
        """Return record at ``index``.

        :raises NotFound: if there's no record at that index.
        """
        if not self._check_index(index):
            raise exc.NotFound(index)
        return self._records[index]

    def as_string(self, index: int) -> str:
        """Return record at ``index`` as rendered in the file (without line terminator).

        :raises NotFound: if there's no record at that index.
        """
        return self._render_record(self.get(index))

    def find_by_uid(self, uid: str, realm: Optional[str] = None) -> Optional[int]:
        """Return index of the first record for ``uid``, or ``None`` if not found."""
        for index, record in enumerate(self._records):
            if self._matches(record, uid, realm):
                return index
        return None

    def _matches(
        self, record: DigestRecord, uid: str, realm: Optional[str]
    ) -> bool:  # pragma: no cover - abstract method
        """check if record belongs to uid (+ realm)"""
        raise NotImplementedError("should be implemented in subclass")

    # =========================================================================
    # modification
    # =========================================================================

    def delete(self, index: int) -> bool:
        """Delete record at ``index``; later records move down one position.

        :returns:
            * ``True`` if record deleted.
            * ``False`` if there's no record at that index.
        """
        if not self._check_index(index):
            return False
        record = self._records.pop(index)
        self._synced = False
        logger.debug("deleted digest for %r at index %d", record.uid, index)
        return True

    def _check_field(self, value: object, param: str) -> str:
        value = check_field(value, param)
        # raises UnicodeEncodeError if value can't be stored using file's encoding
        value.encode(self.encoding)
        return value

    def _encode(self, uid: str, password: str, realm: Optional[str]) -> str:
        if self._encoder is None:
            raise exc.EncoderUnavailable(
                f"{self.__class__.__name__} has no encoder, "
                "call set_encoder() before add()"
            )
        if not isinstance(password, str):
            raise exc.ExpectedStringError(password, "password")
        digest = self._encoder.encode(uid, password, realm)
        if not isinstance(digest, str):
            raise exc.ExpectedStringError(digest, "digest")
        return digest

    def _check_record(self, record: DigestRecord) -> DigestRecord:
        """validate a record passed in by the caller (not parsed from the file)"""
        self._check_field(record.uid, "user")
        if not isinstance(record.digest, str):
            raise exc.ExpectedStringError(record.digest, "digest")
        return record

    def _set_record(self, record: DigestRecord) -> bool:
        """replace the first record with the same identity, or append it.

        :returns: ``True`` if an existing record was replaced.
        """
        index = self.find_by_uid(record.uid, record.realm)
        if index is None:
            self._records.append(record)
        else:
            self._records[index] = record
        self._synced = False
        logger.debug(
            "%s digest for %r (%d records)",
            "updated" if index is not None else "added",
            record.uid,
            len(self._records),
        )
        return index is not None

    # =========================================================================
    # loading & saving
    # =========================================================================

    def _require_path(self, action: str) -> None:
        if not self.path:
            raise RuntimeError(
                f"{self.__class__.__name__}().path is not set, cannot {action}"
            )

    def read(self) -> bool:
        """Replace records with the content of the bound file.

        :returns:
            * ``True`` if records were loaded.
            * ``False`` if the file doesn't exist (the collection is left
              unchanged), or if it holds no records (the collection is emptied).

        :raises MalformedRecord:
            if a line can't be parsed; the collection is left unchanged.

        :raises StorageUnavailable:
            if the file exists but can't be read.
        """
        self._require_path("read")
        content = self._storage.read_text()
        if content is None:
            logger.debug("digest file %r not found", self.path)
            return False
        records = self._parse_lines(content)
        self._records = records
        self._synced = True
        if not records:
            # an empty file is what write() produces for an empty collection
            logger.debug("digest file %r holds no records", self.path)
            return False
        logger.debug("read %d digests from %r", len(records), self.path)
        return True

    def load_string(self, data: StrOrBytes) -> None:
        """Replace records by parsing ``data``, without touching storage"""
        self._records = self._parse_lines(as_str(data, self.encoding))
        self._synced = False

    def _parse_lines(self, content: str) -> list[DigestRecord]:
        records: list[DigestRecord] = []
        seen = set()
        for idx, line in enumerate(content.split("\n")):
            # NOTE: per htpasswd source (https://github.com/apache/httpd/blob/trunk/support/htpasswd.c),
            #       lines with only whitespace, or with "#" as first non-whitespace char,
            #       are ignored.
            tmp = line.lstrip()
            if not tmp or tmp.startswith(_HASH):
                continue
            record = self._parse_record(line, idx + 1)
            key = (record.uid, record.realm)
            if key in seen:
                logger.warning(
                    "username occurs multiple times in source file: %r", record.uid
                )
            seen.add(key)
            records.append(record)
        # NOTE: records are only swapped in by the caller once parsing succeeds,
        #       so a malformed file never leaves a half-loaded collection.
        return records

    def _parse_record(
        self, line: str, lineno: int
    ) -> DigestRecord:  # pragma: no cover - abstract method
        """parse line of file into a record"""
        raise NotImplementedError("should be implemented in subclass")

    def _check_parsed_field(self, value: str, param: str, lineno: int) -> str:
        try:
            return check_field(value, param)
        except ValueError as err:
            raise exc.MalformedRecord(
                f"malformed {self._format_name} file: {err}", lineno
            ) from None

    def _render_record(
        self, record: DigestRecord
    ) -> str:  # pragma: no cover - abstract method
        """render record as line of file"""
        raise NotImplementedError("should be implemented in subclass")

    def to_string(self) -> str:
        """Return file content that :meth:`write` would produce"""
        return "".join(self._render_record(record) + "\n" for record in self._records)

    def write(self) -> bool:
        """Rewrite the bound file from the current records.

        The file is replaced atomically; on failure its previous
        content is left in place.

        :returns:
            * ``True`` if the file was written.
            * ``False`` if it couldn't be (permission denied, lock timeout, ...).
        """
        self._require_path("write")
        try:
            self._storage.write_text(self.to_string(), self._write_options)
        except exc.StorageUnavailable as err:
            logger.error("failed to write digest file %r: %s", self.path, err)
            return False
        self._synced = True
        logger.debug("wrote %d digests to %r", len(self._records), self.path)
        return True


class HtdigestCollection(DigestCollection):
    """Collection of htdigest records, stored as ``uid:realm:digest`` lines.

    :param path: file the collection reads from & writes to.
    :param realm:
        realm used by :meth:`add`, :meth:`find_by_uid` and :meth:`uids`
        when no realm is given explicitly.
    :param digests: optional records to seed the collection with.
    :param encoder: :class:`~libdigest.encoders.DigestEncoder` used by :meth:`add`.
    :param write_options: :class:`~libdigest.storage.WriteOptions` used by :meth:`write`.
    :param encoding: file encoding, must be ascii compatible (defaults to ``utf-8``).

    A record's identity is its ``(uid, realm)`` pair, so the same user
    may appear once per realm.

    :raises ValueError:
        :meth:`add` raises :exc:`ValueError` if the user name or realm
        contains a forbidden character (one of ``:\\r\\n\\t\\x00``),
        or is longer than 255 characters.
    """

    _format_name = "htdigest"

    def __init__(self, path: StrPath, realm: str, **kwargs: Any) -> None:
        self.realm = check_field(realm, "realm")
        super().__init__(path, **kwargs)

    def _require_realm(self, realm: Optional[str]) -> str:
        if realm is None:
            return self.realm
        return self._check_field(realm, "realm")

    def _check_record(self, record: DigestRecord) -> DigestRecord:
        if record.realm is None:
            raise ValueError(f"htdigest record for {record.uid!r} requires a realm")
        self._check_field(record.realm, "realm")
        return super()._check_record(record)

    def find_by_uid(self, uid: str, realm: Optional[str] = None) -> Optional[int]:
        """Return index of the first record for ``uid`` in ``realm``
        (defaults to the collection realm), or ``None`` if not found.
        """
        return super().find_by_uid(uid, self._require_realm(realm))

    def _matches(self, record: DigestRecord, uid: str, realm: Optional[str]) -> bool:
        return record.uid == uid and record.realm == realm

    def add(self, uid: str, password: str, realm: Optional[str] = None) -> bool:
        """Add digest for user, replacing the existing one for the same uid + realm.

        :returns: ``True`` once the digest is stored.

        :raises EncoderUnavailable: if no encoder is bound.
        """
        uid = self._check_field(uid, "user")
        realm = self._require_realm(realm)
        digest = self._encode(uid, password, realm)
        self._set_record(DigestRecord(uid=uid, realm=realm, digest=digest))
        return True

    def uids(self, realm: Optional[str] = None) -> list[str]:
        """Return uids of records in ``realm`` (defaults to the collection realm)"""
        realm = self._require_realm(realm)
        return [record.uid for record in self._records if record.realm == realm]

    def realms(self) -> list[str]:
        """Return distinct realms in the order first seen"""
        return list(dict.fromkeys(record.realm for record in self._records))

    def _parse_record(self, line: str, lineno: int) -> DigestRecord:
        # NOTE: digest is opaque and may contain ":", so only split twice.
        result = line.rstrip("\r\n").split(_COLON, 2)
        if len(result) != 3:
            raise exc.MalformedRecord("malformed htdigest file", lineno)
        uid, realm, digest = result
        return DigestRecord(
            uid=self._check_parsed_field(uid, "user", lineno),
            realm=self._check_parsed_field(realm, "realm", lineno),
            digest=digest,
        )

    def _render_record(self, record: DigestRecord) -> str:
        return f"{record.uid}:{record.realm}:{record.digest}"


class HtpasswdCollection(DigestCollection):
    """Collection of realm-less records, stored as ``uid:digest`` lines.

    Accepts the same keywords as :class:`HtdigestCollection`, minus ``realm``.
    The encoder is called with ``realm=None``.
    """

    _format_name = "htpasswd"

    def _check_record(self, record: DigestRecord) -> DigestRecord:
        if record.realm is not None:
            raise ValueError(
                f"htpasswd record for {record.uid!r} must not have a realm, "
                f"got {record.realm!r}"
            )
        return super()._check_record(record)

    def _matches(self, record: DigestRecord, uid: str, realm: Optional[str]) -> bool:
        return record.uid == uid

    def add(self, uid: str, password: str) -> bool:
        """Add digest for user, replacing the existing one for the same uid.

        :returns: ``True`` once the digest is stored.

        :raises EncoderUnavailable: if no encoder is bound.
        """
        uid = self._check_field(uid, "user")
        digest = self._encode(uid, password, None)
        self._set_record(DigestRecord(uid=uid, realm=None, digest=digest))
        return True

    def uids(self) -> list[str]:
        """Return uids of all records"""
        return [record.uid for record in self._records]

    def _parse_record(self, line: str, lineno: int) -> DigestRecord:
        result = line.rstrip("\r\n").split(_COLON, 1)
        if len(result) != 2:
            raise exc.MalformedRecord("malformed htpasswd file", lineno)
        uid, digest = result
        return DigestRecord(
            uid=self._check_parsed_field(uid, "user", lineno),
            realm=None,
            digest=digest,
        )

    def _render_record(self, record: DigestRecord) -> str:
        return f"{record.uid}:{record.digest}"
