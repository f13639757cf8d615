"""
Video Subtitling Pipeline Module

This module orchestrates the chunked subtitling pipeline that:
1. Probes an uploaded video and plans fixed-length segments
2. Cuts each segment and extracts 16 kHz mono audio (bounded parallelism)
3. Transcribes each segment's audio to SRT (separately bounded parallelism)
4. Re-times and merges the per-segment tracks into one subtitle track
5. Burns the merged track into the original video
6. Publishes the result and records the job's terminal status
"""

__version__ = "1.0.0"
