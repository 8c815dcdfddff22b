import bz2
import logging
import os
import sys

import requests

from .core.loader import MODEL_FILES

logger = logging.getLogger(__name__)

MODEL_BASE_URL = "http://dlib.net/files/"


def download_file(url, filename):
    logger.info(f"Downloading {url}...")
    response = requests.get(url, stream=True)
    response.raise_for_status()

    decompressor = bz2.BZ2Decompressor()
    partial = filename + ".part"
    try:
        with open(partial, "wb") as out:
            for chunk in response.iter_content(chunk_size=1 << 20):
                out.write(decompressor.decompress(chunk))
        if not decompressor.eof:
            raise EOFError(f"Truncated download from {url}")
        os.replace(partial, filename)
    finally:
        if os.path.exists(partial):
            os.remove(partial)
    logger.info(f"Downloaded {filename}")


def main(models_dir=None):
    models_dir = models_dir or os.getenv("FACEMATCH_MODELS_DIR", "models")
    # Create models directory if it doesn't exist
    os.makedirs(models_dir, exist_ok=True)

    # Download each model file
    for filename in MODEL_FILES:
        filepath = os.path.join(models_dir, filename)
        if os.path.exists(filepath):
            logger.info(f"{filename} already present, skipping")
            continue
        try:
            download_file(f"{MODEL_BASE_URL}{filename}.bz2", filepath)
        except (requests.RequestException, OSError, EOFError) as e:
            logger.error(f"Error downloading {filename}: {e}")
            logger.error(
                f"Please download the model files manually and place them in {models_dir!r}: "
                + ", ".join(MODEL_FILES)
            )
            return False
    return True


def cli():
    logging.basicConfig(level=logging.INFO)
    sys.exit(0 if main(sys.argv[1] if len(sys.argv) > 1 else None) else 1)


if __name__ == "__main__":
    cli()
