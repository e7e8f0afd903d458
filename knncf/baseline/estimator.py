from __future__ import annotations

import logging
from typing import Any

import numpy as np
import torch
from sklearn.exceptions import NotFittedError
from torch.utils.data import DataLoader, Dataset

from ..config import BaselineConfig
from ..trainset import NOBODY, TrainSet
from .model import BiasModel

logger = logging.getLogger(__name__)


class RatingsDataset(Dataset):
    def __init__(self, user_idx: np.ndarray, item_idx: np.ndarray, rating: np.ndarray) -> None:
        self.user_idx = torch.as_tensor(user_idx, dtype=torch.long)
        self.item_idx = torch.as_tensor(item_idx, dtype=torch.long)
        self.rating = torch.as_tensor(rating, dtype=torch.float32)

    def __len__(self) -> int:  # pragma: no cover
        return int(self.user_idx.shape[0])

    def __getitem__(self, i: int) -> dict[str, torch.Tensor]:
        return {
            "users": self.user_idx[i],
            "items": self.item_idx[i],
            "ratings": self.rating[i],
        }


def _device_from_str(device: str | None) -> torch.device:
    if device is None:
        if torch.cuda.is_available():
            return torch.device("cuda")
        if getattr(torch.backends, "mps", None) is not None and torch.backends.mps.is_available():
            return torch.device("mps")
        return torch.device("cpu")
    return torch.device(str(device))


class BaselineEstimator:
    """Learns ``b_u`` and ``b_i`` so that ``mu + b_u + b_i`` fits the ratings.

    Loss is the mean squared error plus ``reg * (b_u^2 + b_i^2)`` per sample.
    Biases start at zero and batches are visited in a fixed order, so two fits
    on the same data and device give the same biases.
    """

    def __init__(self, cfg: BaselineConfig | None = None) -> None:
        self.cfg = cfg if cfg is not None else BaselineConfig()
        self.global_mean: float | None = None
        self._user_bias: np.ndarray | None = None
        self._item_bias: np.ndarray | None = None
        self._trainset: TrainSet | None = None

    @property
    def user_bias(self) -> np.ndarray:
        if self._user_bias is None:
            raise NotFittedError("BaselineEstimator is not fitted yet; call fit() first.")
        return self._user_bias

    @property
    def item_bias(self) -> np.ndarray:
        if self._item_bias is None:
            raise NotFittedError("BaselineEstimator is not fitted yet; call fit() first.")
        return self._item_bias

    def fit(self, trainset: TrainSet) -> "BaselineEstimator":
        cfg = self.cfg
        mean_rating = trainset.global_mean
        user_idx, item_idx, ratings = trainset.triples()

        loader = DataLoader(
            RatingsDataset(user_idx, item_idx, ratings),
            batch_size=int(cfg.batch_size),
            shuffle=False,
            num_workers=0,
        )

        torch_device = _device_from_str(cfg.device)
        model = BiasModel(n_users=trainset.user_count, n_items=trainset.item_count).to(torch_device)
        optimizer = torch.optim.Adam(model.parameters(), lr=float(cfg.lr))
        loss_fn = torch.nn.MSELoss()

        logger.info(
            "Baseline training on device=%s epochs=%d batch_size=%d reg=%.4f",
            torch_device,
            int(cfg.epochs),
            int(cfg.batch_size),
            float(cfg.reg),
        )
        model.train()
        for epoch in range(int(cfg.epochs)):
            total_loss = 0.0
            n = 0
            for batch in loader:
                users = batch["users"].to(torch_device)
                items = batch["items"].to(torch_device)
                ratings_t = batch["ratings"].to(torch_device)

                b_u, b_i = model(users, items)
                preds = b_u + b_i + mean_rating
                loss = loss_fn(preds, ratings_t) + float(cfg.reg) * (b_u.pow(2) + b_i.pow(2)).mean()

                optimizer.zero_grad(set_to_none=True)
                loss.backward()
                optimizer.step()

                bs = int(users.shape[0])
                total_loss += float(loss.item()) * bs
                n += bs

            logger.debug("Baseline epoch=%d loss=%.4f", epoch + 1, total_loss / max(1, n))

        model.eval()
        with torch.no_grad():
            self._user_bias = model.user_bias.weight.detach().cpu().numpy().reshape(-1).astype(np.float64)
            self._item_bias = model.item_bias.weight.detach().cpu().numpy().reshape(-1).astype(np.float64)
        self.global_mean = mean_rating
        self._trainset = trainset
        return self

    def predict(self, user_id: Any, item_id: Any) -> float:
        """Baseline estimate for raw ids; unknown ids contribute no bias."""
        if self._trainset is None or self.global_mean is None:
            raise NotFittedError("BaselineEstimator is not fitted yet; call fit() first.")
        inner_user = self._trainset.convert_user_id(user_id)
        inner_item = self._trainset.convert_item_id(item_id)
        pred = self.global_mean
        if inner_user != NOBODY:
            pred += float(self.user_bias[inner_user])
        if inner_item != NOBODY:
            pred += float(self.item_bias[inner_item])
        return float(pred)
