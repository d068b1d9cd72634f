# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release staging subsystem for makerel.

Resolves the release identity from the version header, validates the
manifest, stages the manifested files into a fresh release directory, locks
down permissions, optionally transcodes the tree to EBCDIC, archives it with
external compressors and reports SHA256 digests. The stages run strictly in
that order from `makerel.release.pipeline`.
"""
