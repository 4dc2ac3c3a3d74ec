# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
VerifyNews Core Engine
======================

Resilient claim verification: cached, rate-limited, deduplicated calls to
interchangeable AI verifier backends with a renderable verdict on failure.
"""

__version__ = "0.3.0"
