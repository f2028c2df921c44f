from interview_runtime.uploads.models import MediaChunk
from interview_runtime.uploads.queue import ChunkUploader, ChunkUploadQueue
from interview_runtime.uploads.recorder_feed import RecorderFeed

__all__ = ["MediaChunk", "ChunkUploader", "ChunkUploadQueue", "RecorderFeed"]
