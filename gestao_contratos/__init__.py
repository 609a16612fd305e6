# SPDX-License-Identifier: Apache-2.0

"""
Contract management API: agreement lifecycle and fiscalization workflow.
"""
