'''
Comparison of the two soma layouts. In variant B the somatic node sits off
the center of a longer soma, which changes how much of the soma has to be
charged before the action potential reaches the dendrite.
'''
import matplotlib.pyplot as plt

from sgnsim import Simulation, default_config

sites = (('dendrite', 'node', None), ('soma', 'node', 0), ('axon', 'node', 0))
fig, axes = plt.subplots(1, 2, sharey=True, figsize=(10, 4))
for variant, ax in zip('AB', axes):
    config = default_config(variant).with_simulation(recording_sites=sites)
    config = config.with_stimulus(stimulated_region='dendrite', stimulated_node=0)
    result = Simulation(config).run()
    print(f'Soma variant {variant}')
    print(result.summary())
    for label, v in zip(result.labels, result.monitor.v):
        ax.plot(result.monitor.t, v, label=label)
    ax.set(title=f'Soma {variant}', xlabel='Time (ms)')
axes[0].set_ylabel('v (mV)')
axes[0].legend(frameon=False)
plt.show()
