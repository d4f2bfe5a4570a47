'''
Excitation threshold for different pulse widths (strength-duration curve).

For every pulse width, the stimulus magnitude is stepped down from a
supra-threshold value until the action potential no longer reaches the end of
the axon, the interval is then refined by bisection.
'''
import matplotlib.pyplot as plt
import numpy as np

from sgnsim import Simulation, ThresholdSearch, default_config

config = default_config().with_simulation(tstop=4.0, dt=0.0025)
widths = np.array([0.025, 0.05, 0.1, 0.2, 0.4])
thresholds = []
for width in widths:
    simulation = Simulation(config.with_stimulus(pulse_width=width, amplitude=-10.0))
    search = ThresholdSearch(simulation, step=1.0, method='bisection',
                             tolerance=0.01)
    result = search.run()
    print(f'{width} ms: {result.threshold} mA after {result.iterations} runs')
    thresholds.append(np.nan if result.threshold is None else -result.threshold)

plt.loglog(widths, thresholds, 'o-')
plt.xlabel('Pulse width (ms)')
plt.ylabel('Threshold (mA)')
plt.show()
