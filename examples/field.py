'''
Extracellular potential along the neuron during the stimulus pulse, and the
membrane potential along the axon shortly after the pulse.
'''
import matplotlib.pyplot as plt
import numpy as np

from sgnsim import Simulation, default_config

config = default_config().with_simulation(tstop=1.2)
simulation = Simulation(config)
neuron = simulation.neuron
x = neuron.morphology.x * 1e-3  # mm

pulse_mid = config.stimulus.delay + config.stimulus.pulse_width / 2
e = simulation.field.at(pulse_mid, simulation.stimulus)
simulation.run()

nodes = np.flatnonzero(neuron.morphology.node)
fig, (ax_e, ax_v) = plt.subplots(2, 1, sharex=True)
ax_e.plot(x, e)
ax_e.set_ylabel('e (mV)')
ax_v.plot(x, neuron.v, color='gray')
ax_v.plot(x[nodes], neuron.v[nodes], 'o')
ax_v.set(xlabel='Position along the neuron (mm)', ylabel='v (mV)')
plt.show()
