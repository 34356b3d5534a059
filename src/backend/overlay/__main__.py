# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT

"""Entry point for ``python -m overlay``."""

from overlay.cli import main

if __name__ == "__main__":
    main()
