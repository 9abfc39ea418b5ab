"""Dimensions, state layout and numeric thresholds of the CTRV filter."""

#: State dimension: ``[px, py, v, yaw, yaw_rate]``.
N_X = 5

#: Augmented state dimension (state plus two process-noise terms).
N_AUG = N_X + 2

# Row indices into the state vector / sigma-point matrices
PX = 0
PY = 1
V = 2
YAW = 3
YAW_RATE = 4
NU_A = 5
NU_YAWDD = 6

#: Yaw rates at or below this magnitude use the straight-line CTRV branch.
YAW_RATE_THRESHOLD = 1e-3

#: Lower bound on the range used as the range-rate denominator (m).
MIN_RANGE = 1e-4

#: Timestamps are integer microseconds.
MICROSECONDS_PER_SECOND = 1_000_000

#: 95% quantiles of the chi-squared distribution, keyed by degrees of freedom.
CHI2_95 = {
    1: 3.841,
    2: 5.991,
    3: 7.815,
    4: 9.488,
    5: 11.070,
}
