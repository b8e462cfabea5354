"""
Sound Sensing - Source Merger
Combines project-audio and microphone data under the active source policy.
"""

from typing import Optional

import numpy as np

from config import AudioSourcePolicy


def merge_frames(
    policy: AudioSourcePolicy,
    project: Optional[np.ndarray],
    microphone: Optional[np.ndarray],
    microphone_active: bool,
) -> Optional[np.ndarray]:
    """
    Effective magnitude frame for ``policy``, or None when unavailable.

    PROJECT ignores the microphone entirely. MICROPHONE needs an active
    microphone. ALL takes the per-bin maximum and falls back to the project
    frame while the microphone is not ready.
    """
    mic_ready = microphone_active and microphone is not None
    if policy == AudioSourcePolicy.PROJECT:
        return project
    if policy == AudioSourcePolicy.MICROPHONE:
        return microphone if mic_ready else None
    # ALL
    if not mic_ready:
        return project
    if project is None:
        return microphone
    if len(project) != len(microphone):
        # Mismatched analyser sizes: compare the overlapping bins only
        n = min(len(project), len(microphone))
        merged = np.array(project, dtype=np.float64)
        merged[:n] = np.maximum(project[:n], microphone[:n])
        return merged
    return np.maximum(project, microphone)


def merge_flux(
    policy: AudioSourcePolicy,
    project_flux: Optional[float],
    microphone_flux: Optional[float],
    microphone_active: bool,
) -> Optional[float]:
    """Same policy applied to per-source flux scalars; ALL keeps the larger change."""
    mic_ready = microphone_active and microphone_flux is not None
    if policy == AudioSourcePolicy.PROJECT:
        return project_flux
    if policy == AudioSourcePolicy.MICROPHONE:
        return microphone_flux if mic_ready else None
    if not mic_ready:
        return project_flux
    if project_flux is None:
        return microphone_flux
    return max(project_flux, microphone_flux)
