#!/usr/bin/env python
"""Offline replay: feed a raw serial capture through the parser and store, write a CSV export."""
import argparse
import logging
from pathlib import Path

from telemetry.acquisition.protocol import LineProtocolParser
from telemetry.acquisition.serial_source import PortSelection, SerialIngestionLoop
from telemetry.config import NUM_CHANNELS
from telemetry.io.export import CsvExporter
from telemetry.store import ChannelStore


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("capture", type=Path, help="Raw bytes as received from the device")
    ap.add_argument("output_dir", type=Path)
    ap.add_argument("--channels", type=int, default=NUM_CHANNELS)
    ap.add_argument("--chunk", type=int, default=100, help="Bytes fed per step (mimics serial reads)")
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

    store = ChannelStore(args.channels)
    loop = SerialIngestionLoop(store, LineProtocolParser(args.channels), PortSelection())

    data = args.capture.read_bytes()
    for start in range(0, len(data), args.chunk):
        loop.feed(data[start:start + args.chunk])
    # a capture may end without a final CR
    loop.feed(b"\r")

    path = CsvExporter(directory=args.output_dir).export(store)
    print(f"{loop.lines_ingested} lines ingested, {loop.lines_rejected} rejected, "
          f"{loop.directives_seen} info strings -> {path}")


if __name__ == "__main__":
    main()
