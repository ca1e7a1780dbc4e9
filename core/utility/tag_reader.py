import os
import uuid
from typing import Optional

import mutagen
from mutagen.id3 import ID3, ID3NoHeaderError

from core import logger
from domain.models.song import Track


class TagReader:
    """Reads file metadata and turns it into a Track"""
    artist = 'Unknown artist'
    album = 'Unknown album'

    def __init__(self, path=None, autoextract=False, logger_=None):
        self.title = ""
        self.file_length = 0.0
        self.raw_image_data: Optional[bytes] = None
        self.logger = logger_ if logger_ else logger

        self.__path = path
        if path and autoextract:
            self.read_tags()

    @property
    def song_path(self):
        return self.__path

    def read_tags(self, path=None):
        """
        Read tags from file and update attributes. Unreadable files keep the
        file name as title and a zero length.
        """
        self.__path = path or self.__path
        self.title = os.path.splitext(os.path.basename(self.__path))[0]
        try:
            audio = mutagen.File(self.__path, easy=True)
        except Exception as error:
            self.logger.warning(f'[Tag Reader] Failed to load tags for {self.__path}: {error}')
            return self

        if audio is None:
            self.logger.warning(f'[Tag Reader] Unsupported file type: {self.__path}')
            return self

        if audio.info is not None:
            self.file_length = getattr(audio.info, 'length', 0.0) or 0.0
        if audio.tags:
            self.title = self.__first(audio.tags, 'title', self.title)
            self.artist = self.__first(audio.tags, 'artist', self.artist)
            self.album = self.__first(audio.tags, 'album', self.album)
        self.__get_audio_image_data()
        return self

    @staticmethod
    def __first(tags, key, default):
        values = tags.get(key)
        if values:
            return str(values[0])
        return default

    def __get_audio_image_data(self):
        try:
            tags = ID3(self.__path)
        except ID3NoHeaderError:
            return
        except Exception as error:
            self.logger.debug(f'[Tag Reader] No ID3 artwork for {self.__path}: {error}')
            return
        pictures = tags.getall('APIC')
        if pictures:
            self.raw_image_data = pictures[0].data

    def to_track(self, artwork: Optional[str] = None) -> Track:
        """
        :param artwork: reference to already extracted cover art
        :return:
        """
        return Track(
            id=track_id_for(self.__path),
            title=self.title,
            artist=self.artist,
            album=self.album,
            duration=self.file_length,
            artwork=artwork,
            source=self.__path,
        )


def track_id_for(path: str) -> str:
    """Stable id so that rescanning a file yields the same track"""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, os.path.abspath(path)))
