from PIL import Image
from io import BytesIO


def clamp(value, lower, upper):
    return max(lower, min(value, upper))


def format_time(seconds) -> str:
    """
    Render seconds as m:ss the way the player bar shows elapsed and total time
    :param seconds:
    :return:
    """
    seconds = max(0, int(seconds or 0))
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}:{secs:02d}"


def convert_to_jpeg(image_data: bytes, target_size=None) -> bytes:
    """
    Re-encode embedded cover art as JPEG
    :param image_data: raw image bytes in any format Pillow can open
    :param target_size: optional (width, height) bound for a thumbnail
    :return: jpeg bytes
    """
    image_bytes = BytesIO(image_data)
    out_bytes = BytesIO()
    image = Image.open(image_bytes)
    if image.mode in ('RGBA', 'P', 'LA'):
        image = image.convert('RGB')

    if target_size:
        image.thumbnail(target_size, Image.Resampling.LANCZOS)

    image.save(out_bytes, format='JPEG', quality=85, optimize=True)
    return out_bytes.getvalue()
