"""Loss functions for encoder training.

The encoder is trained by direct regression against the ground-truth
latent codes, so the only objective is a mean-squared error.
"""

import torch
import torch.nn.functional as F


def latent_regression_loss(
    z_pred: torch.Tensor,
    z_target: torch.Tensor,
    reduction: str = 'mean'
) -> torch.Tensor:
    """Mean-squared error between predicted and target latent codes.

    With reduction='mean' the error is averaged over the batch and all
    latent dimensions.

    Args:
        z_pred: Predicted latent codes [batch_size, z_dim]
        z_target: Ground-truth latent codes [batch_size, z_dim]
        reduction: 'mean', 'sum', or 'none'

    Returns:
        Loss (scalar if reduction != 'none')

    Raises:
        ValueError: If reduction is not valid or shapes mismatch
    """
    if reduction not in ['mean', 'sum', 'none']:
        raise ValueError(f"reduction must be 'mean', 'sum', or 'none', got '{reduction}'")

    if z_pred.shape != z_target.shape:
        raise ValueError(f"Shape mismatch: z_pred {z_pred.shape}, z_target {z_target.shape}")

    return F.mse_loss(z_pred, z_target, reduction=reduction)
