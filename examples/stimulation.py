'''
A spiral ganglion neuron stimulated with a cathodic pulse from a point
electrode above the first node of the axon. The action potential starts below
the electrode, at axon node 0 and the neighbouring somatic node, and travels
along the axon to its far end as well as back into the dendrite.
'''
import matplotlib.pyplot as plt

from sgnsim import Simulation, default_config

config = default_config()
simulation = Simulation(config)
result = simulation.run()
print(result.summary())

mon = result.monitor
for label, v in zip(mon.labels, mon.v):
    plt.plot(mon.t, v, label=label)
plt.axhline(config.simulation.spike_threshold, color='gray', ls=':')
plt.xlabel('Time (ms)')
plt.ylabel('v (mV)')
plt.legend(frameon=False)
plt.show()
