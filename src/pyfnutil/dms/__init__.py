# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from pyfnutil.dms.client import AverageTrendInterval, DmsClient, DmsError, TrendingType, TrendRecords
from pyfnutil.dms.snapshot import SnapshotDms

__all__ = [
    'AverageTrendInterval',
    'DmsClient',
    'DmsError',
    'SnapshotDms',
    'TrendingType',
    'TrendRecords',
]
