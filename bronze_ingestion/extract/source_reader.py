"""
Raw source reader.

Streams a source extract (local file, S3 object, or HTTP resource) and splits
it into raw records using the dataset's record terminator, skipping the
configured header rows. Nothing is parsed or transformed here.
"""

import codecs
import os
from typing import Iterable, Iterator, Tuple

import boto3
import requests

from bronze_ingestion.registry import RecordFormat

CHUNK_SIZE = 64 * 1024
HTTP_TIMEOUT_SECONDS = 60


def get_s3_client():
    """Get S3 client with credentials from environment"""
    aws_profile = os.getenv("AWS_PROFILE")
    region = os.getenv("AWS_DEFAULT_REGION", "us-east-1")

    if aws_profile:
        session = boto3.Session(profile_name=aws_profile)
    else:
        session = boto3.Session()

    return session.client("s3", region_name=region)


def _split_s3_uri(locator: str) -> Tuple[str, str]:
    bucket, _, key = locator[len("s3://"):].partition("/")
    if not bucket or not key:
        raise FileNotFoundError(f"Invalid S3 locator: {locator}")
    return bucket, key


def _read_file(path: str) -> Iterator[bytes]:
    with open(path, "rb") as f:
        while True:
            chunk = f.read(CHUNK_SIZE)
            if not chunk:
                break
            yield chunk


def _read_s3(locator: str) -> Iterator[bytes]:
    bucket, key = _split_s3_uri(locator)
    response = get_s3_client().get_object(Bucket=bucket, Key=key)
    body = response["Body"]
    try:
        yield from body.iter_chunks(chunk_size=CHUNK_SIZE)
    finally:
        body.close()


def _read_http(locator: str) -> Iterator[bytes]:
    # Single attempt: a failed request fails the dataset
    with requests.get(locator, stream=True, timeout=HTTP_TIMEOUT_SECONDS) as response:
        response.raise_for_status()
        yield from response.iter_content(chunk_size=CHUNK_SIZE)


def open_source(locator: str) -> Iterator[bytes]:
    """
    Stream the raw bytes behind a source locator.

    Args:
        locator: Local path, file://, s3://bucket/key or http(s):// URI

    Returns:
        Iterator[bytes]: Chunks of the source in order. Opening happens lazily
        on first iteration, so errors surface from the iterator.
    """
    if locator.startswith("s3://"):
        return _read_s3(locator)
    if locator.startswith(("http://", "https://")):
        return _read_http(locator)
    if locator.startswith("file://"):
        locator = locator[len("file://"):]
    return _read_file(locator)


def _decode(chunks: Iterable[bytes], encoding: str) -> Iterator[str]:
    # utf-8-sig drops a leading BOM if the extract has one
    if encoding.lower().replace("_", "-") in ("utf-8", "utf8"):
        encoding = "utf-8-sig"
    decoder = codecs.getincrementaldecoder(encoding)()
    for chunk in chunks:
        text = decoder.decode(chunk)
        if text:
            yield text
    tail = decoder.decode(b"", final=True)
    if tail:
        yield tail


def split_records(chunks: Iterable[str], record_format: RecordFormat) -> Iterator[Tuple[int, str]]:
    """
    Split decoded text into raw records.

    A trailing empty piece after the final terminator is not a record. With a
    '\\n' terminator a preceding '\\r' is dropped so CRLF extracts load too.

    Args:
        chunks: Decoded text chunks
        record_format: Terminator and header layout of the source

    Yields:
        Tuple[int, str]: 1-based source line number and the raw record text,
        header rows excluded
    """
    terminator = record_format.record_terminator
    strip_cr = terminator == "\n"
    buffer = ""
    line_number = 0

    def emit(raw: str) -> Iterator[Tuple[int, str]]:
        nonlocal line_number
        line_number += 1
        if strip_cr and raw.endswith("\r"):
            raw = raw[:-1]
        if line_number > record_format.header_rows:
            yield line_number, raw

    for chunk in chunks:
        buffer += chunk
        *complete, buffer = buffer.split(terminator)
        for raw in complete:
            yield from emit(raw)

    if buffer:
        yield from emit(buffer)


def read_raw_records(locator: str, record_format: RecordFormat) -> Iterator[Tuple[int, str]]:
    """
    Stream raw records from a source locator.

    Args:
        locator: Source locator of the dataset
        record_format: Layout of the source

    Yields:
        Tuple[int, str]: Line number and raw record text
    """
    yield from split_records(_decode(open_source(locator), record_format.encoding), record_format)
