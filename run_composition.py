#!/usr/bin/env python3
"""
Main CLI entrypoint for the Narrated Video Composer.

This is a convenience wrapper that imports and runs the composition pipeline.
"""

import sys

from narrated_video.pipelines.run_composition import main

if __name__ == "__main__":
    sys.exit(main())
