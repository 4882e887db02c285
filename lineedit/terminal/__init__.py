"""Key events and layout, a scripted terminal, and POSIX key decoding, rendering and raw mode."""