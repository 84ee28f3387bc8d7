from PIL import Image

from src.registry import read_image_sizes
from src.render import load_stimulus_image


def test_stimulus_image_matches_registry_orientation(tmp_path):
    im = Image.new('RGB', (40, 30))
    exif = Image.Exif()
    exif[0x0112] = 6  # rotated 90 CW
    im.save(tmp_path / '003.jpg', exif=exif)

    [(sid, w, h)] = read_image_sizes(str(tmp_path))
    arr = load_stimulus_image(str(tmp_path / '003.jpg'))
    assert arr.shape == (h, w, 3)
    assert arr.shape[:2] == (40, 30)
