"""Generate synthetic QR images (clean, rotated, low-contrast, noisy) for tests."""

import os

import numpy as np
import segno
from PIL import Image, ImageEnhance

OUT_DIR = os.path.join(os.path.dirname(__file__), "data")


def make_clean(out_dir=OUT_DIR, payload="Hello World"):
    """Writes a clean QR code and returns its path."""
    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, "sample_clean.png")
    segno.make(payload, error="m", micro=False).save(path, scale=10, border=4)
    return path


def rotated(input_path, angle=90):
    """Rotates the image counter-clockwise on a white background."""
    img = Image.open(input_path).convert("L")
    out = img.rotate(angle, expand=True, fillcolor=255)
    out_path = os.path.join(os.path.dirname(input_path), "sample_rotated.png")
    out.save(out_path)
    return out_path


def low_contrast(input_path, factor=0.15):
    """Squeezes all gray levels towards the mean."""
    img = Image.open(input_path).convert("L")
    out = ImageEnhance.Contrast(img).enhance(factor)
    out_path = os.path.join(os.path.dirname(input_path), "sample_low_contrast.png")
    out.save(out_path)
    return out_path


def noisy(input_path, amount=0.2, seed=0):
    """Flips a random fraction of pixels to black or white."""
    img = np.array(Image.open(input_path).convert("L"))
    rng = np.random.default_rng(seed)
    mask = rng.random(img.shape) < amount
    img[mask] = rng.choice(np.array([0, 255], dtype=np.uint8), size=int(mask.sum()))
    out_path = os.path.join(os.path.dirname(input_path), "sample_noisy.png")
    Image.fromarray(img).save(out_path)
    return out_path


def generate_all(out_dir=OUT_DIR):
    base = make_clean(out_dir)
    return {
        "clean": base,
        "rotated": rotated(base),
        "low_contrast": low_contrast(base),
        "noisy": noisy(base),
    }


if __name__ == "__main__":
    generate_all()
    print("Generated samples in:", OUT_DIR)
