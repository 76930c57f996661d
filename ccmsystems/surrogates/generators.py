"""
Surrogate time series generation for CCM null model testing.

Surrogates preserve some statistical property of a series (amplitude
distribution, power spectrum) while destroying the temporal structure that
cross mapping relies on.
"""

import numpy as np
from tqdm import tqdm


def generate_random_surrogates(x: np.ndarray,
                               n_surr: int,
                               rng: np.random.Generator,
                               verbose: bool = False) -> np.ndarray:
    """
    Generate random-shuffled surrogates.

    Destroys all temporal structure while preserving amplitude distribution.

    Parameters
    ----------
    x : np.ndarray, shape (N,)
        Input time series
    n_surr : int
        Number of surrogates to generate
    rng : np.random.Generator
        Random source
    verbose : bool, default False
        Show progress bar

    Returns
    -------
    np.ndarray, shape (n_surr, N)
        Surrogate time series
    """
    x = np.asarray(x, dtype=float)
    surrogates = np.zeros((n_surr, x.shape[0]), dtype=float)

    for i in tqdm(range(n_surr), desc="Random shuffle", disable=not verbose):
        surrogates[i] = rng.permutation(x)

    return surrogates


def generate_fourier_surrogates(x: np.ndarray,
                                n_surr: int,
                                rng: np.random.Generator,
                                verbose: bool = False) -> np.ndarray:
    """
    Generate phase-randomized Fourier surrogates.

    Preserves the power spectrum (and so the autocorrelation) of the series
    while randomizing the Fourier phases.

    Parameters
    ----------
    x : np.ndarray, shape (N,)
        Input time series
    n_surr : int
        Number of surrogates to generate
    rng : np.random.Generator
        Random source
    verbose : bool, default False
        Show progress bar

    Returns
    -------
    np.ndarray, shape (n_surr, N)
        Surrogate time series
    """
    x = np.asarray(x, dtype=float)
    n = x.shape[0]
    surrogates = np.zeros((n_surr, n), dtype=float)

    spectrum = np.fft.rfft(x)
    amplitudes = np.abs(spectrum)

    for i in tqdm(range(n_surr), desc="Fourier surrogates", disable=not verbose):
        phases = rng.uniform(0, 2 * np.pi, len(spectrum))
        # DC (and Nyquist for even n) must stay real
        phases[0] = 0.0
        if n % 2 == 0:
            phases[-1] = 0.0
        randomized = amplitudes * np.exp(1j * phases)
        randomized[0] = spectrum[0]
        surrogates[i] = np.fft.irfft(randomized, n=n)

    return surrogates


SURROGATE_GENERATORS = {
    'random': generate_random_surrogates,
    'fourier': generate_fourier_surrogates,
}


def get_surrogate_generator(method: str):
    """Look up a surrogate generator by name ('random' or 'fourier')."""
    try:
        return SURROGATE_GENERATORS[method]
    except KeyError:
        raise ValueError(
            f"Unknown surrogate method {method!r}; choose from {sorted(SURROGATE_GENERATORS)}"
        ) from None
