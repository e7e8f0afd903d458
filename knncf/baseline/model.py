from __future__ import annotations

import torch
import torch.nn as nn


class BiasModel(nn.Module):
    """Per-user and per-item bias terms on top of a fixed global mean.

    The global mean is added outside the module so the embeddings learn
    residuals only.
    """

    def __init__(self, n_users: int, n_items: int) -> None:
        super().__init__()
        self.user_bias = nn.Embedding(int(n_users), 1)
        self.item_bias = nn.Embedding(int(n_items), 1)

        nn.init.zeros_(self.user_bias.weight)
        nn.init.zeros_(self.item_bias.weight)

    def forward(self, user_idx: torch.Tensor, item_idx: torch.Tensor) -> tuple[torch.Tensor, torch.Tensor]:
        return self.user_bias(user_idx).view(-1), self.item_bias(item_idx).view(-1)
