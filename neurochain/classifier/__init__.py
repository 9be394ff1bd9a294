"""
Classifier collaborator boundary and the offline bag-of-words backend.

Components:
- base.py: ClassifierResult, ClassifierError and the Classifier protocol
- bow.py: JSON bag-of-words linear model scored with numpy
"""

from .base import Classifier, ClassifierError, ClassifierResult
from .bow import BagOfWordsClassifier

__all__ = ['Classifier', 'ClassifierError', 'ClassifierResult', 'BagOfWordsClassifier']
