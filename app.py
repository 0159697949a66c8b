import io
import logging
import os
import sys

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from werkzeug.utils import secure_filename

import frequency
from codec import CorruptDataError, compress, decompress
from huffman import build_tree

log = logging.getLogger(__name__)

# -----------------------------------------------------------
# CONFIGURATION
# -----------------------------------------------------------
CHUNK_SIZE = int(os.environ.get("HUFFMAN_CHUNK_SIZE", frequency.CHUNK_SIZE))
WORKER_COUNT = int(os.environ.get("HUFFMAN_WORKERS", frequency.WORKER_COUNT))
MAX_UPLOAD_MB = int(os.environ.get("HUFFMAN_MAX_UPLOAD_MB", 64))
COMPRESSED_EXT = ".huff"

# -----------------------------------------------------------
# FLASK APP SETUP
# -----------------------------------------------------------
app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = MAX_UPLOAD_MB * 1024 * 1024
CORS(app)


# -----------------------------------------------------------
# HELPER FUNCTIONS
# -----------------------------------------------------------
def init_logging(verbose=False):
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch = logging.StreamHandler(sys.stdout)
    ch.setFormatter(logging.Formatter("[%(asctime)s][%(levelname)s] %(message)s"))
    logger.addHandler(ch)


def error(message, status):
    return jsonify({"success": False, "error": message}), status


def uploaded_file():
    file = request.files.get("file")
    if not file or not file.filename:
        return None, None
    return file, secure_filename(file.filename) or "upload"


def parse_frequencies(raw):
    """Turn a JSON object like {"97": 5} into a frequency map keyed by int."""
    if not isinstance(raw, dict):
        raise ValueError("frequencies must be an object")
    frequencies = {}
    for key, value in raw.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"count for {key!r} must be an integer")
        frequencies[int(key)] = value
    return frequencies


@app.errorhandler(413)
def upload_too_large(e):
    return error(f"Upload exceeds the {MAX_UPLOAD_MB} MB limit", 413)


# -----------------------------------------------------------
# ANALYSIS ROUTES
# -----------------------------------------------------------
@app.route("/api/frequencies", methods=["POST"])
def frequencies_route():
    file, filename = uploaded_file()
    if not file:
        return error("No file uploaded", 400)
    try:
        freqs = frequency.count(file.stream, CHUNK_SIZE, WORKER_COUNT)
    except frequency.CountError as e:
        log.exception("Counting failed for %s", filename)
        return error(f"Could not read upload: {e}", 500)

    return jsonify({
        "success": True,
        "filename": filename,
        "frequencies": {str(byte): count for byte, count in sorted(freqs.items())},
        "total": sum(freqs.values()),
    })


@app.route("/api/code_table", methods=["POST"])
def code_table_route():
    data = request.get_json(silent=True)
    if not data or "frequencies" not in data:
        return error("Request body must be JSON with a 'frequencies' object", 400)
    try:
        freqs = parse_frequencies(data["frequencies"])
        tree = build_tree(freqs)
    except ValueError as e:
        return error(str(e), 400)

    return jsonify({
        "success": True,
        "code_table": {str(byte): code for byte, code in sorted(tree.code_table.items())},
        "root_frequency": tree.root.freq if tree.root else 0,
        "weighted_path_length": tree.weighted_path_length(),
    })


# -----------------------------------------------------------
# COMPRESSION ROUTES
# -----------------------------------------------------------
@app.route("/compress_file", methods=["POST"])
def compress_file_route():
    file, filename = uploaded_file()
    if not file:
        return error("No file uploaded", 400)
    try:
        data = file.read()
        compressed = compress(data, CHUNK_SIZE, WORKER_COUNT)
    except frequency.CountError as e:
        log.exception("Compression failed for %s", filename)
        return error(f"Compression failed: {e}", 500)

    original_size = len(data)
    compressed_size = len(compressed)
    saved_percent = round((original_size - compressed_size) / original_size * 100, 2) if original_size else 0
    log.info("Compressed %s: %d -> %d bytes", filename, original_size, compressed_size)

    response = send_file(
        io.BytesIO(compressed),
        as_attachment=True,
        download_name=filename + COMPRESSED_EXT,
        mimetype="application/octet-stream",
    )
    response.headers["X-Original-Size"] = str(original_size)
    response.headers["X-Compressed-Size"] = str(compressed_size)
    response.headers["X-Saved-Percent"] = str(saved_percent)
    return response


@app.route("/decompress_file", methods=["POST"])
def decompress_file_route():
    file, filename = uploaded_file()
    if not file:
        return error("No file uploaded", 400)
    if not filename.endswith(COMPRESSED_EXT):
        return error("Invalid file type", 400)

    try:
        data = decompress(file.read())
    except CorruptDataError as e:
        log.warning("Rejected %s: %s", filename, e)
        return error(f"Corrupt compressed file: {e}", 400)

    return send_file(
        io.BytesIO(data),
        as_attachment=True,
        download_name=filename[:-len(COMPRESSED_EXT)] or "decompressed.bin",
        mimetype="application/octet-stream",
    )


# -----------------------------------------------------------
if __name__ == "__main__":
    init_logging(verbose="--verbose" in sys.argv)
    app.run(debug=False)
