"""
Image Service for the Lesson Planner
Builds Pollinations AI prompt URLs and downloads slide backgrounds
"""

import os
import logging
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)

# Pollinations AI configuration
IMAGE_ENDPOINT = os.getenv("LESSON_IMAGE_ENDPOINT", "https://image.pollinations.ai/prompt")
IMAGE_WIDTH = 1280
IMAGE_HEIGHT = 720
IMAGE_TIMEOUT = int(os.getenv("LESSON_IMAGE_TIMEOUT", "60"))


def get_image_url(keyword: str) -> str:
    """
    Build the image URL for a slide's image keyword

    No model is pinned so the provider picks its fastest available one.

    Args:
        keyword: Short visual prompt, e.g. "cute vector illustration of Noah's ark"

    Returns:
        URL returning a 1280x720 image for the prompt
    """
    encoded = quote(keyword, safe="!'()*")
    return f"{IMAGE_ENDPOINT}/{encoded}?width={IMAGE_WIDTH}&height={IMAGE_HEIGHT}&nologo=true"


def fetch_image(keyword: str) -> bytes:
    """
    Download the generated image for a keyword

    Raises:
        requests.exceptions.RequestException: on network failure or a non-2xx reply
    """
    url = get_image_url(keyword)
    logger.info(f"Fetching slide image: {keyword}")

    response = requests.get(url, timeout=IMAGE_TIMEOUT)
    response.raise_for_status()

    return response.content


if __name__ == "__main__":
    # Quick test
    print("Testing Pollinations image endpoint...")
    data = fetch_image("cinematic oil painting of a quiet mountain sunrise")
    print(f"Fetched {len(data):,} bytes")
