# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
EBCDIC transcoding for release trees.

tables.py holds the code page tables and the UTF-EBCDIC encoder, sniff.py
classifies file content, and transcoder.py rewrites the staged files.
"""
