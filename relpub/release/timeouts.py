from __future__ import annotations

# git clone of a single tag
CHECKOUT_TIMEOUT_SECONDS = 15 * 60.0

# cargo build --release for one target
BUILD_TIMEOUT_SECONDS = 60 * 60.0

# One asset upload (gh release upload)
UPLOAD_TIMEOUT_SECONDS = 5 * 60.0

# gh release view / create / edit
GH_TIMEOUT_SECONDS = 60.0
