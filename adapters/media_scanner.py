import os
from typing import List, Optional
from core import logger
from domain.models.song import Track
from core.utility.tag_reader import TagReader
from core.utility.utils import convert_to_jpeg
from domain.enums.media_scanner import ScannerState
from core.constants.events import MediaScannerEvent


class MediaScanner:
    extensions = ["mp3", "mp4", "m4a", "flac", "ogg", "wav"]

    def __init__(self, event_bus, extensions: List[str] = None, artwork_dir: Optional[str] = None):
        """
        :param event_bus:
        :param extensions: subset of the supported extensions to look for
        :param artwork_dir: where embedded cover art is written, art is skipped when None
        """
        self.bus = event_bus
        self.status: ScannerState = ScannerState.STOP
        self.artwork_dir = artwork_dir

        # Clean extensions
        if extensions:
            valid_exts = [ext.lower() for ext in extensions if ext.lower() in self.extensions]
            if len(valid_exts) != len(extensions):
                logger.warning(f"[Media Scanner] Removed unsupported extensions")
            self.extensions = valid_exts

    def scan(self, *directories: str) -> List[Track]:
        """
        Walk the directories and build a track for every supported file, in path order
        :param directories:
        :return:
        """
        if self.status == ScannerState.SCAN:
            logger.warning(f"[Media Scanner] Scanner already active, cannot scan")
            return []

        scanned: List[Track] = []
        try:
            self.status = ScannerState.SCAN
            self.bus.publish(MediaScannerEvent.SCANNER_STARTED, list(directories))
            logger.info("[Media Scanner] Start scanning for media")

            for directory in directories:
                for root, dirs, files in os.walk(directory):
                    dirs.sort()
                    for file in sorted(files):
                        if not self.is_supported(file):
                            continue
                        file_path = os.path.join(root, file)
                        track = self.read_track(file_path)
                        if track.duration <= 0:
                            # zero length tracks never advance
                            logger.warning(f"[Media Scanner] Skipped '{file_path}', no playable length")
                            self.bus.publish(MediaScannerEvent.SCANNER_ERROR,
                                             ValueError(f"No playable length: {file_path}"))
                            continue
                        scanned.append(track)
                        self.bus.publish(MediaScannerEvent.SCANNER_PROGRESS,
                                         {"file": file_path, "count": len(scanned)})

            logger.info(f"[Media Scanner] Finished scanning, {len(scanned)} tracks")
            self.bus.publish(MediaScannerEvent.SCANNER_FINISHED, len(scanned))
            self.status = ScannerState.COMPLETE

        except OSError as e:
            logger.error(f"[Media Scanner] Scan failed: {e}")
            self.status = ScannerState.STOP
            self.bus.publish(MediaScannerEvent.SCANNER_ERROR, e)

        return scanned

    def is_supported(self, file_name: str) -> bool:
        return any(file_name.lower().endswith(f".{ext}") for ext in self.extensions)

    def read_track(self, file_path: str) -> Track:
        tag = TagReader(path=file_path, autoextract=True)
        track = tag.to_track()
        artwork = self._store_artwork(track.id, tag.raw_image_data)
        if artwork:
            track = tag.to_track(artwork=artwork)
        return track

    def _store_artwork(self, track_id: str, image_data: Optional[bytes]) -> Optional[str]:
        if not self.artwork_dir or not image_data:
            return None
        path = os.path.join(self.artwork_dir, f"{track_id}.jpg")
        if os.path.exists(path):
            return path
        try:
            data = convert_to_jpeg(image_data, target_size=(600, 600))
        except Exception as e:
            logger.warning(f"[Media Scanner] Unreadable artwork for {track_id}: {e}")
            return None
        os.makedirs(self.artwork_dir, exist_ok=True)
        with open(path, "wb") as fh:
            fh.write(data)
        return path
