"""DC motor speed control: PID with relay auto-tuning, RBF gain scheduling and step-response evaluation."""

__version__ = "0.2.0"
__all__ = ["controller", "motor", "performance", "pid", "rbf"]