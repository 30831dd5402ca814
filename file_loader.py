"""
Helper module to read JSON snapshot documents from either disk or Streamlit uploaded buffers.
"""
import json
import os

import pandas as pd
import streamlit as st


def get_file_source(file_key: str, file_path: str):
    """
    Returns a file-like object or path for reading a JSON document.

    Priority:
    1. If uploaded file exists in session_state.uploaded_files, use that buffer
    2. Otherwise, use the file_path (disk or env var)

    Args:
        file_key: key in st.session_state.uploaded_files (e.g., 'stores', 'inventory')
        file_path: fallback file path

    Returns:
        tuple: (source, is_uploaded) where source is file-like or path, is_uploaded is bool
    """
    # st.session_state is not available when running outside a Streamlit script
    try:
        uploaded_files = st.session_state.get('uploaded_files', {})
    except (AttributeError, RuntimeError):
        uploaded_files = {}

    if file_key in uploaded_files:
        return uploaded_files[file_key], True
    elif os.path.isfile(os.path.abspath(file_path)):
        return file_path, False
    else:
        return None, False


def read_json_records(source) -> pd.DataFrame:
    """
    Parse a JSON array of flat records into a DataFrame.

    Args:
        source: path, raw bytes, or file-like object (uploaded buffer)

    Returns:
        pd.DataFrame, one row per record

    Raises:
        ValueError if the document is not a JSON array of objects
    """
    if isinstance(source, (bytes, bytearray)):
        payload = json.loads(source.decode('utf-8'))
    elif hasattr(source, 'read'):
        if hasattr(source, 'seek'):
            source.seek(0)
        raw = source.read()
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode('utf-8')
        payload = json.loads(raw)
    else:
        with open(source, 'r', encoding='utf-8') as fh:
            payload = json.load(fh)

    if not isinstance(payload, list):
        raise ValueError(f"Expected a JSON array of records, got {type(payload).__name__}")
    if payload and not all(isinstance(item, dict) for item in payload):
        raise ValueError("Expected every array element to be a JSON object")

    return pd.DataFrame.from_records(payload)


def safe_read_json(file_key: str, file_path: str, source=None):
    """
    Safely read a JSON document from either uploaded buffer or disk.

    Args:
        file_key: key in st.session_state.uploaded_files
        file_path: fallback file path
        source: pre-resolved source (skips the session lookup, used by worker threads)

    Returns:
        pd.DataFrame or raises an exception
    """
    if source is None:
        source, _ = get_file_source(file_key, file_path)

    if source is None:
        raise FileNotFoundError(f"File not found: {file_path} (and no uploaded file)")

    if hasattr(source, 'getvalue'):
        # Uploaded buffers are shared across reruns; read a private copy of the bytes
        raw = source.getvalue()
        source = raw.encode('utf-8') if isinstance(raw, str) else bytes(raw)

    return read_json_records(source)
