from __future__ import annotations

import math
import torch

SQRT2 = math.sqrt(2.0)

DEVICE = torch.device("cuda" if torch.cuda.is_available() else "cpu")
DTYPE = torch.float64
