"""
Training utilities for autoencoder models
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional

import pandas as pd
import torch
import torch.nn as nn
import torch.optim as optim
from torch.utils.data import DataLoader
from tqdm import tqdm


logger = logging.getLogger(__name__)

OPTIMIZERS = {
    'adadelta': optim.Adadelta,
    'adam': optim.Adam,
    'rmsprop': optim.RMSprop,
    'sgd': optim.SGD,
}

LOSSES = {
    'binary_crossentropy': nn.BCELoss,
    'mse': nn.MSELoss,
}


def get_optimizer(name: str,
                  parameters: Iterable[torch.nn.Parameter],
                  learning_rate: Optional[float] = None) -> optim.Optimizer:
    """
    Create an optimizer by name

    Args:
        name: 'adadelta', 'adam', 'rmsprop' or 'sgd'
        parameters: Model parameters
        learning_rate: Learning rate (default: the optimizer's own default)
    """
    if name not in OPTIMIZERS:
        raise ValueError(f"Unknown optimizer: {name}. Choose from {list(OPTIMIZERS.keys())}")
    if learning_rate is None:
        if name == 'sgd':
            learning_rate = 0.01
        else:
            return OPTIMIZERS[name](parameters)
    return OPTIMIZERS[name](parameters, lr=learning_rate)


def get_criterion(name: str) -> nn.Module:
    """Create a reconstruction loss by name ('binary_crossentropy' or 'mse')"""
    if name not in LOSSES:
        raise ValueError(f"Unknown loss: {name}. Choose from {list(LOSSES.keys())}")
    return LOSSES[name]()


class EarlyStopping:
    """
    Stop when the monitored loss has not improved for `patience` epochs

    An epoch counts as an improvement only if the loss drops by more than
    min_delta below the best value seen so far.
    """

    def __init__(self, patience: int = 10, min_delta: float = 1e-2):
        if patience < 1:
            raise ValueError(f"patience must be at least 1, got {patience}")
        self.patience = patience
        self.min_delta = min_delta
        self.best = float('inf')
        self.counter = 0

    def step(self, value: float) -> bool:
        """Record one epoch, return True when training should stop"""
        if value < self.best - self.min_delta:
            self.best = value
            self.counter = 0
        else:
            self.counter += 1
        return self.counter >= self.patience


class AutoencoderTrainer:
    """
    Trainer for autoencoder models

    The model must return (reconstructed, latent) and is trained to
    reproduce its own input.
    """

    def __init__(self,
                 model: nn.Module,
                 train_loader: DataLoader,
                 val_loader: DataLoader,
                 criterion: nn.Module,
                 optimizer: optim.Optimizer,
                 device: str = 'cpu',
                 early_stopping_patience: int = 10,
                 min_delta: float = 1e-2,
                 save_dir: Optional[Path] = None):
        """
        Args:
            model: PyTorch autoencoder
            train_loader: Training data loader
            val_loader: Validation data loader
            criterion: Reconstruction loss
            optimizer: Optimizer
            device: Device (cuda/mps/cpu)
            early_stopping_patience: Epochs without improvement before stopping
            min_delta: Minimum validation loss decrease counted as improvement
            save_dir: Optional directory for checkpoints and history
        """
        self.model = model.to(device)
        self.train_loader = train_loader
        self.val_loader = val_loader
        self.criterion = criterion
        self.optimizer = optimizer
        self.device = device
        self.early_stopping = EarlyStopping(early_stopping_patience, min_delta)
        self.save_dir = Path(save_dir) if save_dir is not None else None
        if self.save_dir is not None:
            self.save_dir.mkdir(parents=True, exist_ok=True)

        self.best_val_loss = float('inf')
        self.history = {'train_loss': [], 'val_loss': []}

    def train_epoch(self, epoch: int, total_epochs: int) -> Dict[str, float]:
        """Train for one epoch"""
        self.model.train()
        running_loss = 0.0

        pbar = tqdm(self.train_loader, desc=f'Epoch {epoch}/{total_epochs} [Train]', leave=False)
        for images in pbar:
            images = images.to(self.device)

            self.optimizer.zero_grad()
            reconstructed, _ = self.model(images)
            loss = self.criterion(reconstructed, images)

            loss.backward()
            self.optimizer.step()

            running_loss += loss.item() * images.size(0)
            pbar.set_postfix({'loss': f'{loss.item():.4f}'})

        return {'loss': running_loss / len(self.train_loader.dataset)}

    def validate(self) -> Dict[str, float]:
        """Validate model"""
        self.model.eval()
        running_loss = 0.0

        with torch.no_grad():
            for images in tqdm(self.val_loader, desc='[Val]', leave=False):
                images = images.to(self.device)
                reconstructed, _ = self.model(images)
                loss = self.criterion(reconstructed, images)
                running_loss += loss.item() * images.size(0)

        return {'loss': running_loss / len(self.val_loader.dataset)}

    def train(self, num_epochs: int) -> Dict[str, list]:
        """
        Train model until num_epochs or early stopping

        Returns:
            Training history with per-epoch train_loss and val_loss
        """
        if num_epochs < 1:
            raise ValueError(f"num_epochs must be at least 1, got {num_epochs}")

        for epoch in range(1, num_epochs + 1):
            train_metrics = self.train_epoch(epoch, num_epochs)
            val_metrics = self.validate()

            self.history['train_loss'].append(train_metrics['loss'])
            self.history['val_loss'].append(val_metrics['loss'])

            logger.info("Epoch %d/%d - train loss: %.6f, val loss: %.6f",
                        epoch, num_epochs, train_metrics['loss'], val_metrics['loss'])

            if val_metrics['loss'] < self.best_val_loss:
                self.best_val_loss = val_metrics['loss']
                if self.save_dir is not None:
                    self.save_checkpoint(epoch, 'best_model.pth', val_metrics)

            if self.early_stopping.step(val_metrics['loss']):
                logger.info("Early stopping triggered after %d epochs", epoch)
                break

        if self.save_dir is not None:
            self.save_checkpoint(epoch, 'final_model.pth', val_metrics)
            csv_path = self.save_history_csv()
            logger.info("Training history saved to: %s", csv_path)

        logger.info("Training complete! Best val loss: %.6f", self.best_val_loss)
        return self.history

    def save_checkpoint(self, epoch: int, filename: str, metrics: Dict = None):
        """Save model checkpoint"""
        checkpoint = {
            'epoch': epoch,
            'model_state_dict': self.model.state_dict(),
            'optimizer_state_dict': self.optimizer.state_dict(),
            'best_val_loss': self.best_val_loss,
            'history': self.history,
        }

        if metrics is not None:
            checkpoint['metrics'] = metrics

        torch.save(checkpoint, self.save_dir / filename)

    def save_history_csv(self) -> Path:
        """Save training history to CSV file"""
        df = pd.DataFrame({
            'epoch': range(1, len(self.history['train_loss']) + 1),
            'train_loss': self.history['train_loss'],
            'val_loss': self.history['val_loss']
        })
        csv_path = self.save_dir / 'training_history.csv'
        df.to_csv(csv_path, index=False)
        return csv_path
