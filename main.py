#!/usr/bin/env python3

from icosphere_lod.cli import main


if __name__ == "__main__":
    main()
