"""
Streamlit front end for the Crank–Nicolson tunneling simulation.

The sidebar exposes the barrier (height, width and centre), the initial
Gaussian wave packet (centre, width and wave number), the grid and the time
integration.  **Run Simulation** evolves the packet with
:func:`qm_tunneling.simulation.run_simulation`; the **Time** slider and the
Play / Pause buttons then step through the recorded frames together with the
reflection and transmission curves.

Run with ``streamlit run qm_tunneling/app.py``.
"""

import logging
import time

import streamlit as st

from qm_tunneling.config import SimulationConfig
from qm_tunneling.errors import TunnelingError
from qm_tunneling.grid import penetration_estimate
from qm_tunneling.plotting import frame_figure, probability_figure
from qm_tunneling.simulation import run_simulation

logger = logging.getLogger(__name__)

DEFAULTS = {
    "L": 10.0,
    "n_points": 500,
    "barrier_height": 170.0,
    "barrier_width": 1.0,
    "barrier_center": 0.0,
    "sigma": 0.5,
    "x0": -5.0,
    "k0": 18.0,
    "t_end": 1.0,
    "dt": 1e-4,
    "record_stride": 50,
}

# derived state dropped whenever parameters are reset
_DERIVED_KEYS = ["sim_data", "prev_params", "idx", "play"]


def _rerun():
    if hasattr(st, "rerun"):
        st.rerun()
    elif hasattr(st, "experimental_rerun"):
        st.experimental_rerun()


def _apply_pending_presets() -> None:
    # Widget values can only be changed before the widgets are created.
    if st.session_state.get("_reset_flag", False):
        st.session_state.update(DEFAULTS)
        for key in _DERIVED_KEYS:
            st.session_state.pop(key, None)
        st.session_state._reset_flag = False

    if st.session_state.get("_preset_mostly_reflected", False):
        st.session_state.update({
            "barrier_height": 250.0,
            "barrier_width": 1.5,
            "k0": 15.0,
            "sigma": 1.0,
        })
        for key in _DERIVED_KEYS:
            st.session_state.pop(key, None)
        st.session_state._preset_mostly_reflected = False


def _sidebar_parameters() -> dict:
    st.sidebar.header("Simulation Parameters")

    L = st.sidebar.slider("Half width of spatial domain (L)", 5.0, 50.0, DEFAULTS["L"], step=1.0, key="L")
    n_points = st.sidebar.select_slider(
        "Number of spatial points", options=[250, 500, 1000, 2000], value=DEFAULTS["n_points"], key="n_points"
    )

    st.sidebar.subheader("Barrier")
    V0 = st.sidebar.slider("Height V₀", 0.0, 500.0, DEFAULTS["barrier_height"], step=1.0, key="barrier_height")
    width = st.sidebar.slider("Width", 0.0, 10.0, DEFAULTS["barrier_width"], step=0.1, key="barrier_width")
    centre = st.sidebar.slider(
        "Centre position", float(-L + 1.0), float(L - 1.0), DEFAULTS["barrier_center"], step=0.1, key="barrier_center"
    )

    st.sidebar.subheader("Initial wave packet")
    sigma = st.sidebar.slider("Width σ", 0.1, 5.0, DEFAULTS["sigma"], step=0.1, key="sigma")
    x0 = st.sidebar.slider("Initial centre x₀", float(-L + 1.0), float(L - 1.0), DEFAULTS["x0"], step=0.5, key="x0")
    k0 = st.sidebar.slider("Central wave number k₀", -30.0, 30.0, DEFAULTS["k0"], step=0.5, key="k0")

    st.sidebar.subheader("Time integration")
    t_end = st.sidebar.slider("Total simulation time", 0.05, 5.0, DEFAULTS["t_end"], step=0.05, key="t_end")
    dt = st.sidebar.select_slider(
        "Time step Δt", options=[1e-5, 5e-5, 1e-4, 5e-4, 1e-3, 5e-3], value=DEFAULTS["dt"], key="dt"
    )
    record_stride = st.sidebar.slider(
        "Steps between recorded frames", 1, 500, DEFAULTS["record_stride"], step=1, key="record_stride"
    )

    with st.sidebar.expander("Transmission estimate"):
        est = penetration_estimate(k0, V0, width)
        if est.above_barrier:
            st.write(f"E ≈ {est.energy:.3f} ≥ V₀ ⇒ above-barrier scattering (T can be large).")
        else:
            st.write(f"E ≈ {est.energy:.3f}, κ ≈ {est.kappa:.3f},  T_est ≈ {est.transmission:.2e}")
            st.caption("Heuristic for a square barrier (use to set scales).")

    if st.sidebar.button("Make it mostly reflected"):
        st.session_state._preset_mostly_reflected = True
        _rerun()

    return {
        "x_min": -L,
        "x_max": L,
        "n_points": int(n_points),
        "barrier_height": V0,
        "barrier_width": width,
        "barrier_center": centre,
        "sigma": sigma,
        "x0": x0,
        "k0": k0,
        "t_end": t_end,
        "dt": float(dt),
        "record_stride": int(record_stride),
    }


def _run(params: dict) -> None:
    config = SimulationConfig.from_mapping(params)
    bar = st.progress(0.0, text="Computing wavefunction evolution...")

    def progress(step, n_steps):
        bar.progress(min(step / n_steps, 1.0), text=f"Step {step} / {n_steps}")

    try:
        result = run_simulation(config, progress=progress)
    except TunnelingError as exc:
        logger.exception("simulation failed")
        st.error(f"Simulation failed: {exc}")
        st.stop()
    bar.empty()
    st.session_state.sim_data = result
    st.session_state.prev_params = params
    st.session_state.idx = 0
    st.success("Simulation complete.")


def _show_frame(result) -> None:
    max_idx = len(result) - 1
    if st.session_state.get("idx", 0) > max_idx:
        st.session_state.idx = max_idx
    st.session_state.setdefault("idx", 0)
    st.session_state.setdefault("play", False)

    selected = st.slider(
        "Time stamp",
        0,
        max_idx,
        value=int(st.session_state.idx),
        step=1,
        format="%d",
        help="Frame index from 0 to {} (total time = {:.3f})".format(max_idx, result.times[-1]),
    )
    if selected != st.session_state.idx:
        st.session_state.idx = selected

    with st.sidebar.container():
        col1, col2 = st.columns([1, 1])
        with col1:
            if st.button("▶ Play"):
                st.session_state.play = True
        with col2:
            if st.button("⏸ Pause"):
                st.session_state.play = False

    idx = st.session_state.idx
    sample = result.probabilities
    cols = st.columns(4)
    cols[0].metric("Reflection R", f"{sample.reflection[idx]:.4f}")
    cols[1].metric("Transmission T", f"{sample.transmission[idx]:.4f}")
    cols[2].metric("Inside barrier", f"{sample.barrier[idx]:.4f}")
    cols[3].metric("Total Σ|ψ|²dx", f"{sample.total[idx]:.6f}")

    st.pyplot(frame_figure(result, idx))
    st.pyplot(probability_figure(result, idx))
    st.caption(
        f"⟨x⟩ = {result.centers[idx]:.3f}; max norm drift over the run = {sample.max_drift():.2e}"
    )

    if st.session_state.play:
        if st.session_state.idx >= max_idx:
            st.session_state.play = False
        else:
            st.session_state.idx += 1
            time.sleep(0.025)
            _rerun()


def run_app() -> None:
    """Main entry point for the Streamlit application."""
    _apply_pending_presets()

    st.title("Quantum Wave‑Packet Tunneling in One Dimension")
    st.markdown(
        """
        The time‑dependent Schrödinger equation is integrated with the
        Crank–Nicolson scheme: each step solves the tridiagonal system
        $(1 + i\\Delta t H/2\\hbar)\\,\\psi^{n+1} = (1 - i\\Delta t H/2\\hbar)\\,\\psi^n$
        with the wavefunction held at zero on both walls.  Reflection and
        transmission are the fractions of $|\\psi|^2$ left and right of the
        barrier.
        """
    )

    params = _sidebar_parameters()

    st.session_state.setdefault("prev_params", None)
    st.session_state.setdefault("sim_data", None)

    if st.sidebar.button("Run Simulation") or (
        st.session_state.prev_params is not None and st.session_state.prev_params != params
    ):
        _run(params)

    def reset_parameters():
        st.session_state._reset_flag = True

    st.sidebar.button("Reset Parameters", on_click=reset_parameters)

    if st.session_state.sim_data is not None:
        _show_frame(st.session_state.sim_data)
    else:
        st.info("Adjust parameters and click 'Run Simulation' to begin.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_app()
