import numpy as np
import imageio.v3 as iio


class DepthImageError(ValueError):
    """Raised when a depth image cannot be decoded."""


def read_depth_image(path):
    """
    Decode a depth image into a 2D array of raw depth values.

    16-bit single channel PNGs are returned as stored. Multi-channel images
    keep their first channel.

    Parameters
    ----------
    path : str
        Image file.

    Returns
    -------
    depth : ndarray of shape (height, width)
    """
    try:
        image = iio.imread(path)
    except Exception as exc:
        # Truncated files surface as struct.error or SyntaxError from the decoder
        raise DepthImageError("Could not decode depth image {}: {}".format(path, exc)) from exc
    image = np.asarray(image)
    if image.ndim == 3:
        image = image[:, :, 0]
    if image.ndim != 2:
        raise DepthImageError("Depth image {} has unsupported shape {}.".format(path, image.shape))
    return image
