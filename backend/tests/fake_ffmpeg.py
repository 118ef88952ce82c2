"""
Stand-in for the ffmpeg binary used by the tests.

Behaviour is picked with the FAKE_FFMPEG_MODE environment variable:
  ok (default)  write a small GIF to the output path
  empty         create a zero-byte output file
  missing       exit 0 without creating the output
  invalid       fail with "Invalid data found" on stderr
  denied        fail with "Permission denied" on stderr
  sleep         hang until killed
  noduration    probe output without a Duration line

When FAKE_FFMPEG_ARGS_FILE is set, the received arguments are written there
as JSON.
"""

import json
import os
import sys
import time

PROBE_OUTPUT = """Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'input.mp4':
  Metadata:
    major_brand     : isom
  Duration: 00:01:05.50, start: 0.000000, bitrate: 1205 kb/s
  Stream #0:0[0x1](und): Video: h264 (High) (avc1 / 0x31637661), yuv420p(progressive), 1280x720 [SAR 1:1 DAR 16:9], 1200 kb/s, 29.97 fps, 29.97 tbr, 30k tbn (default)
Output #0, null, to 'pipe:':
"""

GIF_BYTES = b"GIF89a" + b"\x01\x00\x01\x00\x00\x00\x00;" * 4


def main(argv: list[str]) -> int:
    mode = os.environ.get("FAKE_FFMPEG_MODE", "ok")

    args_file = os.environ.get("FAKE_FFMPEG_ARGS_FILE")
    if args_file:
        with open(args_file, "w", encoding="utf-8") as handle:
            json.dump(argv, handle)

    if argv == ["-version"]:
        print("ffmpeg version 6.1-fake Copyright (c) 2000-2023 the FFmpeg developers")
        return 0

    if mode == "sleep":
        time.sleep(60)
        return 0

    if "null" in argv:
        if mode == "noduration":
            sys.stderr.write("Input #0, matroska, from 'input.mkv':\n")
        else:
            sys.stderr.write(PROBE_OUTPUT)
        return 0

    if mode == "invalid":
        sys.stderr.write("input.mp4: Invalid data found when processing input\n")
        return 1
    if mode == "denied":
        sys.stderr.write("gif-1.gif: Permission denied\n")
        return 1

    output_path = argv[-1]
    if mode == "missing":
        return 0
    with open(output_path, "wb") as handle:
        if mode != "empty":
            handle.write(GIF_BYTES)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
