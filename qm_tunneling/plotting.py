"""Matplotlib figures for a :class:`~qm_tunneling.simulation.SimulationResult`."""

import numpy as np
from matplotlib.figure import Figure

PACKET_FORMULA = (
    "$\\psi(x,0) \\propto \\exp\\left[-\\frac{(x - x_0)^2}{2 \\sigma^2}\\right] \\exp(i k_0 x)$\n"
    "$V(x) = V_0$ for $|x - x_c| < w/2$; 0 otherwise"
)


def density_scale(psi: np.ndarray, margin: float = 1.10) -> float:
    """Factor that puts the peak of |ψ|² just above the peak of Re/Im ψ."""
    wave_peak = max(np.max(np.abs(psi.real)), np.max(np.abs(psi.imag)))
    dens_peak = np.max(np.abs(psi) ** 2)
    if dens_peak > 0 and wave_peak > 0:
        return float(margin * wave_peak / dens_peak)
    return 1.0


def frame_figure(result, index: int, dpi: int = 150) -> Figure:
    """Wave packet at recorded frame ``index`` with the barrier on a twin axis."""
    psi = result.wavefunctions[index]
    t = result.times[index]
    real_part = np.real(psi)
    imag_part = np.imag(psi)
    prob_density = result.densities[index]
    scale = density_scale(psi)

    fig = Figure(figsize=(9, 5), dpi=dpi)
    ax1 = fig.add_subplot(111)
    fig.subplots_adjust(right=0.7, bottom=0.3)
    ax1.plot(result.x, real_part, label=r"$\Re[\psi(x,t)]$", color="tab:blue")
    ax1.plot(result.x, imag_part, label=r"$\Im[\psi(x,t)]$", color="tab:red")
    ax1.plot(result.x, scale * prob_density, label=rf"$|\psi(x,t)|^2$ × {scale:.2g}", color="tab:green")
    ax1.set_xlabel("Position x")
    ax1.set_ylabel("Wavefunction components / Probability density")
    ax1.set_title(f"Wave packet at t = {t:.3f}")

    wave_min = min(real_part.min(), imag_part.min(), 0.0)
    wave_max = max(real_part.max(), imag_part.max())
    headroom = 1.05
    ymin = wave_min - (headroom - 1) * max(1e-12, wave_max - wave_min)
    ymax = headroom * max(wave_max, scale * prob_density.max(), 1e-12)
    ax1.set_ylim(ymin, ymax)

    ax2 = ax1.twinx()
    ax2.plot(result.x, result.potential, label="Potential V(x)", color="black", linestyle="--", alpha=0.6)
    ax2.set_ylabel("Potential energy V(x)")

    lines, labels = ax1.get_legend_handles_labels()
    lines2, labels2 = ax2.get_legend_handles_labels()
    ax1.legend(lines + lines2, labels + labels2, loc="upper left", bbox_to_anchor=(1.15, 0.9), frameon=False)

    fig.text(
        0.02,
        0.02,
        PACKET_FORMULA,
        ha="left",
        va="bottom",
        fontsize=12,
        bbox=dict(boxstyle="round,pad=0.3", facecolor="white", alpha=0.7),
    )
    return fig


def probability_figure(result, index=None, dpi: int = 150) -> Figure:
    """Reflection, transmission, barrier occupancy and total against time.

    A vertical marker is drawn at frame ``index`` when given.
    """
    series = result.probabilities
    fig = Figure(figsize=(9, 3.5), dpi=dpi)
    ax = fig.add_subplot(111)
    ax.plot(result.times, series.reflection, label="Reflection", color="tab:blue")
    ax.plot(result.times, series.transmission, label="Transmission", color="tab:red")
    ax.plot(result.times, series.barrier, label="Inside barrier", color="tab:orange")
    ax.plot(result.times, series.total, label="Total Σ|ψ|²dx", color="black", linestyle=":")
    if index is not None:
        ax.axvline(result.times[index], color="grey", linewidth=1)
    ax.set_xlabel("Time t")
    ax.set_ylabel("Probability")
    ax.set_ylim(-0.02, 1.05)
    ax.legend(loc="center right", frameon=False)
    fig.subplots_adjust(bottom=0.18, top=0.95)
    return fig
